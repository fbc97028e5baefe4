"""
Tailnet configuration outside the access policy: DNS, auth keys and
tailnet-wide settings.
"""

from tailpolicy.tailnet.dns import DnsChange, DnsConfigurator, apply_dns, plan_dns
from tailpolicy.tailnet.keys import (
    AuthKeyRequest,
    CredentialIssuer,
    IssuedKey,
    plan_auth_keys,
    unknown_key_tags,
)
from tailpolicy.tailnet.settings import SettingsApplier, plan_contacts, plan_settings

__all__ = [
    "AuthKeyRequest",
    "CredentialIssuer",
    "DnsChange",
    "DnsConfigurator",
    "IssuedKey",
    "SettingsApplier",
    "apply_dns",
    "plan_auth_keys",
    "plan_contacts",
    "plan_dns",
    "plan_settings",
    "unknown_key_tags",
]
