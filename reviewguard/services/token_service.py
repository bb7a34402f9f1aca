"""Feedback link tokens. 128-bit random hex, reissued on every send."""
import secrets

from flask import current_app

TOKEN_BYTES = 16


def generate_token() -> str:
    return secrets.token_hex(TOKEN_BYTES)


def issue_tracking_token(customer) -> str:
    """Give the customer a fresh token; links carrying older tokens stop resolving"""
    token = generate_token()
    customer.tracking_token = token
    return token


def generate_review_link_token() -> str:
    return generate_token()


def feedback_link(token: str) -> str:
    base_url = current_app.config.get('APP_BASE_URL', '').rstrip('/')
    return f"{base_url}/r/{token}"
