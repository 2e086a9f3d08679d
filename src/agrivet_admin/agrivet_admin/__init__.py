"""Agri-Vet admin back office.

Feature modules (users, permissions, staff, attendance, leave, sales,
marketing, dashboard) each carry a model, a repository protocol with its
MySQL implementation, a service layer and a thin Flask controller.
"""
