"""Application package for the Q&A admin backend.

This package exposes the service, repository and model modules used by
the FastAPI application, plus a small HTTP client (`qa_admin.client`)
for driving the API from scripts or an admin frontend.
"""
