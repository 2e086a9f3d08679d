from __future__ import annotations

from src.agrivet_admin.agrivet_admin.marketing.validation import (
    clean_campaign_fields,
    validate_campaign_form,
    validate_campaign_update,
    validate_template_form,
)


def valid_form(**overrides):
    data = {
        "campaign_name": "Rainy Season Promo",
        "title": "10% off all vitamins",
        "template_type": "hero_banner",
        "background_color": "#FFF",
        "cta_text": "Shop now",
        "cta_url": "https://agrivet.test/promo",
        "publish_date": "2026-03-01T08:00:00",
        "unpublish_date": "2026-03-31T20:00:00",
        "target_audience": ["farmers"],
    }
    data.update(overrides)
    return data


def test_valid_form_has_no_errors():
    assert validate_campaign_form(valid_form()) == {}


def test_required_fields_and_lengths():
    errors = validate_campaign_form(valid_form(campaign_name="  ", title="x" * 501, template_type="billboard"))

    assert errors == {
        "campaign_name": "Campaign name is required",
        "title": "Title must be less than 500 characters",
        "template_type": "Unknown template type",
    }


def test_colors_urls_and_dates():
    errors = validate_campaign_form(
        valid_form(
            text_color="blue",
            cta_url="ftp://agrivet.test",
            unpublish_date="2026-02-01T00:00:00",
            description="d" * 2001,
        )
    )

    assert errors["text_color"] == "Please enter a valid hex color"
    assert errors["cta_url"] == "Please enter a valid URL"
    assert errors["unpublish_date"] == "Unpublish date must be after publish date"
    assert "description" in errors


def test_cta_text_and_url_go_together():
    assert validate_campaign_form(valid_form(cta_url=None))["cta_url"] == "CTA URL is required when CTA text is provided"
    assert validate_campaign_form(valid_form(cta_text=""))["cta_text"] == "CTA text is required when CTA URL is provided"
    assert validate_campaign_form(valid_form(cta_text="   "))["cta_text"] == "CTA text cannot be blank"
    assert validate_campaign_form(valid_form(cta_text="c" * 101))["cta_text"] == "CTA text must be less than 100 characters"


def test_lists_and_bad_dates():
    errors = validate_campaign_form(valid_form(target_channels="web", publish_date="next week"))

    assert errors["target_channels"] == "Must be a list"
    assert errors["publish_date"] == "Please enter a valid date"


def test_update_checks_only_supplied_keys():
    assert validate_campaign_update({"content": "New body"}) == {}
    assert validate_campaign_update({"title": ""}) == {"title": "Title is required"}


def test_text_fields_must_be_strings():
    errors = validate_campaign_form({"campaign_name": 42, "title": 7, "template_type": "popup", "content": ["a"]})

    assert errors == {"campaign_name": "Must be text", "title": "Must be text", "content": "Must be text"}
    assert validate_campaign_update({"title": 7}) == {"title": "Must be text"}
    assert validate_template_form({"template_name": 3, "template_type": "popup"}) == {"template_name": "Must be text"}


def test_template_form():
    assert validate_template_form({"template_name": "Hero", "template_type": "hero_banner"}) == {}

    errors = validate_template_form({"template_type": "poster", "default_styles": "red", "required_fields": [1]})
    assert set(errors) == {"template_name", "template_type", "default_styles", "required_fields"}

    assert validate_template_form({"description": "Only this"}, partial=True) == {}


def test_clean_fields_normalize_values():
    cleaned = clean_campaign_fields(valid_form(campaign_name="  Promo  ", description="  "))

    assert cleaned["campaign_name"] == "Promo"
    assert cleaned["description"] is None
    assert cleaned["background_color"] == "#fff"
    assert cleaned["template_type"].value == "hero_banner"
    assert cleaned["publish_date"].day == 1
    assert cleaned["target_audience"] == ("farmers",)
