"""Alert and attribute schemas."""

import hashlib
import json
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class AttributeType(str, Enum):
    """Common attribute types. ``Attribute.type`` is not restricted to these."""

    IPADDR = "ipaddr"
    IPV4 = "ipv4"
    IPV6 = "ipv6"
    DOMAIN = "domain"
    USERNAME = "username"
    FILEHASH = "filehash"
    JSON = "json"
    URL = "url"


def _digest(*parts: str) -> str:
    # JSON list encoding keeps ("a/b", "c") and ("a", "b/c") distinct
    material = json.dumps(list(parts), ensure_ascii=False, separators=(",", ":"))
    return hashlib.sha256(material.encode("utf-8")).hexdigest()


class Attribute(BaseModel):
    """A value observed in an alert: IP address, domain, user name, ..."""

    key: str  # e.g. "src_ip", "remote host"
    type: str  # see AttributeType
    value: str
    timestamp: datetime | None = None  # when the value was observed
    context: list[str] = Field(default_factory=list)  # e.g. ["remote", "subject"]

    @field_validator("type", mode="before")
    @classmethod
    def unwrap_enum(cls, v: Any) -> Any:
        # AttributeType.IPV4 and "ipv4" must hash the same
        return v.value if isinstance(v, Enum) else v

    def hash(self) -> str:
        """Fingerprint of key, type and value. Observation time is excluded."""
        return _digest(self.key, self.type, self.value)


class Alert(BaseModel):
    """An alert emitted by a detector."""

    detector: str
    rule_name: str
    rule_id: str = ""
    alert_key: str
    description: str = ""
    timestamp: datetime
    attributes: list[Attribute] = Field(default_factory=list)
    body: dict[str, Any] = Field(default_factory=dict)

    def alert_id(self) -> str:
        """Stable identity of the incident this alert belongs to."""
        return _digest(self.detector, self.rule_name, self.alert_key)
