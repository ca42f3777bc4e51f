"""
Company registration adapter (``workflow_modules.company_registration.adapter``).

Payload rules
-------------
* ``select_name``: ``selected_name`` must be one of the request's
  candidate names.
* ``approve``: ``registration_number`` (non-empty) and
  ``incorporation_date`` (a ``date`` or ISO ``YYYY-MM-DD`` string) are
  required; ``contact_phone`` is optional.

Side effect
-----------
``approve`` inserts the RegisteredCompany in the same atomic unit as the
status change, so a request is completed if and only if its company
exists.  ``registered_companies.source_request_id`` is unique, which
rules out a second company for the same request at the database level.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Mapping, Sequence
from uuid import UUID, uuid4

from workflow_kernel.domain.adapter import WorkflowAdapter
from workflow_kernel.domain.ports import Insert, ProfileDirectory
from workflow_kernel.domain.records import CompanyRegistrationRequest, CompanyStatus
from workflow_kernel.domain.workflow import Transition
from workflow_kernel.exceptions import IncompletePayloadError
from workflow_modules.company_registration.workflows import COMPANY_REGISTRATION_WORKFLOW

REGISTERED_COMPANIES = "registered_companies"


def _text(payload: Mapping[str, Any], key: str) -> str | None:
    value = payload.get(key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def parse_incorporation_date(value: Any) -> date | None:
    """Accept a date, a datetime or an ISO date string; None if invalid."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            return None
    return None


class CompanyRegistrationAdapter(WorkflowAdapter):
    workflow = COMPANY_REGISTRATION_WORKFLOW
    table = "company_registration_requests"

    def validate_payload(
        self,
        entity: CompanyRegistrationRequest,
        transition: Transition,
        payload: Mapping[str, Any],
    ) -> Mapping[str, Any]:
        if transition.action == "select_name":
            if _text(payload, "selected_name") is None:
                raise IncompletePayloadError(self.name, transition.action, ["selected_name"])
            # Candidates are stored as submitted; match them exactly.
            name = payload["selected_name"]
            if name not in entity.candidate_names:
                raise IncompletePayloadError(
                    self.name, transition.action, ["selected_name"],
                    reason=f"{name!r} is not one of the candidate names",
                )
            return {"selected_name": name}

        if transition.action == "approve":
            missing = []
            number = _text(payload, "registration_number")
            if number is None:
                missing.append("registration_number")
            incorporated = parse_incorporation_date(payload.get("incorporation_date"))
            if incorporated is None:
                missing.append("incorporation_date")
            if missing:
                raise IncompletePayloadError(self.name, transition.action, missing)
            return {
                "registration_number": number,
                "incorporation_date": incorporated,
                "contact_phone": _text(payload, "contact_phone"),
            }

        return {}

    def build_patch(
        self,
        entity: CompanyRegistrationRequest,
        transition: Transition,
        payload: Mapping[str, Any],
        actor_id: UUID,
        now: datetime,
    ) -> dict[str, Any]:
        if transition.action == "select_name":
            return {"selected_name": payload["selected_name"]}
        if transition.to_state == "rejected":
            # selected_name is only carried by name_selected/completed
            return {"selected_name": None}
        return {}

    def side_effects(
        self,
        entity: CompanyRegistrationRequest,
        transition: Transition,
        payload: Mapping[str, Any],
        actor_id: UUID,
        now: datetime,
    ) -> Sequence[Insert]:
        if transition.action != "approve":
            return ()
        return (
            Insert(REGISTERED_COMPANIES, {
                "id": uuid4(),
                "owner_id": entity.submitter_id,
                "company_name": entity.selected_name,
                "registration_number": payload["registration_number"],
                "incorporation_date": payload["incorporation_date"],
                "jurisdiction": entity.jurisdiction,
                "status": CompanyStatus.ACTIVE.value,
                "contact_email": entity.contact_email,
                "contact_phone": payload.get("contact_phone"),
                "source_request_id": entity.id,
                "created_at": now,
            }),
        )

    def recipient(self, entity: CompanyRegistrationRequest, profiles: ProfileDirectory) -> str | None:
        return entity.contact_email or None

    def notify_variables(
        self,
        entity: CompanyRegistrationRequest,
        transition: Transition,
        profiles: ProfileDirectory,
    ) -> dict[str, Any]:
        return {
            "user_name": profiles.resolve_display_name(entity.submitter_id) or "Customer",
            "request_id": str(entity.id),
            "company_name": entity.selected_name or entity.candidate_names[0],
            "jurisdiction": entity.jurisdiction,
            "status": entity.status.value,
            "admin_notes": entity.admin_note or "",
        }
