"""Domain events for seller verification."""

from dataclasses import dataclass

from infrastructure.events import DomainEvent


@dataclass
class KycSubmittedEvent(DomainEvent):
    event_type: str = "kyc.submitted"


@dataclass
class KycApprovedEvent(DomainEvent):
    event_type: str = "kyc.approved"


@dataclass
class KycRejectedEvent(DomainEvent):
    event_type: str = "kyc.rejected"


def kyc_payload(submission, **extra) -> dict:
    payload = {
        "submission_id": str(submission.id),
        "seller_id": str(submission.seller_id),
        "document_type": submission.document_type,
        "status": submission.status,
    }
    payload.update(extra)
    return payload
