"""Pseudonymous visitor tokens.

A token is a keyed hash of the visitor's IP, user agent and accept-language
under a secret that changes every UTC day. Tokens collapse repeat visits on
the same day but cannot be linked across days or reversed to an IP without
the server secret.
"""
from __future__ import annotations

import base64
import hashlib
import hmac
from datetime import datetime, timezone
from typing import Optional


def hmac_base64url(secret: str, data: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), data.encode("utf-8"), hashlib.sha256).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def utc_date_string(moment: Optional[datetime] = None) -> str:
    moment = moment or datetime.now(timezone.utc)
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%d")


def daily_secret(server_secret: str, date: str) -> str:
    return hmac_base64url(server_secret, date)


def visitor_token(
    server_secret: str,
    date: str,
    ip: str,
    user_agent: str,
    accept_language: str,
) -> str:
    return hmac_base64url(daily_secret(server_secret, date), f"{ip}|{user_agent}|{accept_language}")
