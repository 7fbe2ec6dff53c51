"""
Support Group Taxonomy
======================

The closed set of support groups the pattern classifier chooses from.

The built-in taxonomy covers a typical corporate IT helpdesk. A deployment
can replace it with a YAML file of the form:

    groups:
      - name: Network Operations
        responsibilities: Handle network connectivity issues ...
        examples:
          - Cannot connect to VPN from home office
"""

from pathlib import Path
from typing import Optional, Tuple

import yaml

from helpdesk.core import ConfigurationException, DomainException
from helpdesk.triage.domain.entities import SupportGroup

Taxonomy = Tuple[SupportGroup, ...]


DEFAULT_SUPPORT_GROUPS: Taxonomy = (
    SupportGroup(
        name="Network Operations",
        responsibilities=(
            "Handle network connectivity issues, VPN problems, internet outages, "
            "firewall configurations, and network hardware troubleshooting."
        ),
        examples=(
            "Cannot connect to VPN from home office",
            "Internet connection is very slow in the marketing department",
            "Unable to access network drives after moving to a new office",
            "Firewall is blocking access to required business applications",
        ),
    ),
    SupportGroup(
        name="Desktop Support",
        responsibilities=(
            "Manage hardware issues, software installations, operating system problems, "
            "and peripheral device setup."
        ),
        examples=(
            "My laptop won't turn on",
            "Need Microsoft Office installed on my new computer",
            "Blue screen error when starting Windows",
            "Cannot connect my monitor to the docking station",
        ),
    ),
    SupportGroup(
        name="Application Support",
        responsibilities=(
            "Resolve issues with business applications, software bugs, application "
            "access problems, and feature requests."
        ),
        examples=(
            "Cannot log into the CRM system",
            "Excel crashes when opening large spreadsheets",
            "Need access to the accounting software",
            "The reporting dashboard shows incorrect data",
        ),
    ),
    SupportGroup(
        name="Email & Collaboration",
        responsibilities=(
            "Support email services, calendar functions, video conferencing tools, "
            "and collaboration platforms."
        ),
        examples=(
            "Not receiving emails from external senders",
            "Cannot schedule meetings in Outlook",
            "Teams call quality is poor during meetings",
            "Need to set up an email distribution list",
        ),
    ),
    SupportGroup(
        name="Security",
        responsibilities=(
            "Address security incidents, suspicious activities, access control issues, "
            "and security policy compliance."
        ),
        examples=(
            "Received a suspicious phishing email",
            "Need to reset multi-factor authentication",
            "Concerned about potential malware on my computer",
            "Request for temporary elevated permissions",
        ),
    ),
    SupportGroup(
        name="Database Administration",
        responsibilities=(
            "Manage database performance issues, data access problems, query "
            "optimization, and database maintenance."
        ),
        examples=(
            "Database server is running slowly",
            "Need access to the customer database",
            "Error when running SQL queries against the production database",
            "Database backup failed last night",
        ),
    ),
    SupportGroup(
        name="Server Operations",
        responsibilities=(
            "Handle server hardware issues, operating system problems, virtualization, "
            "and server maintenance."
        ),
        examples=(
            "Production web server is down",
            "Need additional storage on the file server",
            "Server performance degradation after recent updates",
            "Virtual machine not starting properly",
        ),
    ),
)


def load_support_groups(path: Path) -> Taxonomy:
    """
    Load a taxonomy from a YAML file.

    Raises:
        ConfigurationException: If the file is missing, unreadable, empty
            or names the same group twice
    """
    if not path.exists():
        raise ConfigurationException(f"Support group file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationException(f"Invalid support group file {path}: {e}")

    entries = data.get("groups") if isinstance(data, dict) else None
    if not entries:
        raise ConfigurationException(f"No support groups defined in {path}")

    groups = []
    for entry in entries:
        if not isinstance(entry, dict):
            raise ConfigurationException(f"Malformed support group entry in {path}: {entry!r}")
        try:
            groups.append(SupportGroup(
                name=str(entry.get("name", "")).strip(),
                responsibilities=str(entry.get("responsibilities", "")).strip(),
                examples=tuple(str(e) for e in entry.get("examples") or ()),
            ))
        except DomainException as e:
            raise ConfigurationException(f"Invalid support group in {path}: {e.message}")

    names = [group.name for group in groups]
    if len(set(names)) != len(names):
        raise ConfigurationException(f"Duplicate support group names in {path}")

    return tuple(groups)


def resolve_taxonomy(path: Optional[Path] = None) -> Taxonomy:
    """The YAML taxonomy when a path is configured, else the built-in one."""
    if path is None:
        return DEFAULT_SUPPORT_GROUPS
    return load_support_groups(path)
