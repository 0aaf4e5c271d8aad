"""Email Approval package.

This package is organized by feature modules (approval, emails, tasks, users, ...)
with a thin Flask controller layer and service/repository layers underneath.
"""
