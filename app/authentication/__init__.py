"""
Authentication application.

Holds the custom email-identified User model. Signup, login and token
issuance are handled outside this service; the model exists so that
competitions, teams and payout accounts have an owner.

Usage:
    from authentication.models import User, UserRole
"""
