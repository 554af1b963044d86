"""
VeriFlow Configuration

Runtime settings read from VF_* environment variables.

    VF_LOG_LEVEL               Logging level (INFO)
    VF_LINK_EXPIRY_HOURS       Validity of a freshly issued customer link (72)
    VF_REVISION_LINK_DAYS      Validity of a link reissued after rejection (7)
    VF_MAX_REJECTIONS          Rejection budget per case (4)
    VF_MAX_DYNAMIC_PHOTOS      Upper bound on dynamically generated photo slots (50)
    VF_CAS_MAX_RETRIES         Compare-and-swap retries for counter updates (5)
    VF_GPS_TOLERANCE_METERS    Allowed distance from the insured property (100)
    VF_TEMPLATES_DIR           Directory holding template packs (templates)
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional


@dataclass(frozen=True)
class Settings:
    log_level: str = "INFO"
    link_expiry_hours: int = 72
    revision_link_days: int = 7
    max_rejections: int = 4
    max_dynamic_photos: int = 50
    cas_max_retries: int = 5
    gps_tolerance_meters: float = 100.0
    templates_dir: str = "templates"

    @property
    def link_validity(self) -> timedelta:
        return timedelta(hours=self.link_expiry_hours)

    @property
    def revision_link_validity(self) -> timedelta:
        return timedelta(days=self.revision_link_days)

    @classmethod
    def from_env(cls, environ: Optional[dict[str, str]] = None) -> Settings:
        """Build settings from the environment, falling back to defaults."""
        env = os.environ if environ is None else environ
        return cls(
            log_level=env.get("VF_LOG_LEVEL", "INFO").upper(),
            link_expiry_hours=int(env.get("VF_LINK_EXPIRY_HOURS", "72")),
            revision_link_days=int(env.get("VF_REVISION_LINK_DAYS", "7")),
            max_rejections=int(env.get("VF_MAX_REJECTIONS", "4")),
            max_dynamic_photos=int(env.get("VF_MAX_DYNAMIC_PHOTOS", "50")),
            cas_max_retries=int(env.get("VF_CAS_MAX_RETRIES", "5")),
            gps_tolerance_meters=float(env.get("VF_GPS_TOLERANCE_METERS", "100")),
            templates_dir=env.get("VF_TEMPLATES_DIR", "templates"),
        )
