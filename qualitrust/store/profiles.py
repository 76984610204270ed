from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Literal, Optional

from qualitrust.errors import ProfileMissing, ValidationFailed

from .documents import DocumentStore

PROFILES = "profiles"

Role = Literal["Titular", "Substituto"]
ROLES = ("Titular", "Substituto")


@dataclass(frozen=True)
class EvaluatorProfile:
    """Who is filling in the evaluation (explicit context, no global session)."""

    uid: str
    name: str
    unit: str
    role: Role
    email: str = ""


class ProfileStore:
    """user id -> {name, unit, role, email} in the `profiles` collection."""

    def __init__(self, store: DocumentStore):
        self._store = store

    def get(self, user_id: str) -> Optional[EvaluatorProfile]:
        doc = self._store.get(PROFILES, user_id)
        if doc is None:
            return None
        d = doc.data
        return EvaluatorProfile(
            uid=user_id,
            name=str(d.get("name") or ""),
            unit=str(d.get("unit") or ""),
            role=d.get("role") if d.get("role") in ROLES else "Titular",
            email=str(d.get("email") or ""),
        )

    def require(self, user_id: str) -> EvaluatorProfile:
        profile = self.get(user_id)
        if profile is None:
            raise ProfileMissing(user_id)
        return profile

    def save(self, profile: EvaluatorProfile) -> None:
        errors = {}
        if not profile.name.strip():
            errors["name"] = "Name is required."
        if not profile.unit.strip():
            errors["unit"] = "Unit is required."
        if profile.role not in ROLES:
            errors["role"] = f"Role must be one of {', '.join(ROLES)}."
        if errors:
            raise ValidationFailed(errors)

        data = asdict(profile)
        data.pop("uid")
        self._store.set(PROFILES, profile.uid, data)
