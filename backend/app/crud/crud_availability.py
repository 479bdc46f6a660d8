from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from .. import models


def get_template(db: Session, provider_id: str) -> Optional[models.AvailabilityTemplate]:
    return (
        db.query(models.AvailabilityTemplate)
        .filter(models.AvailabilityTemplate.provider_id == provider_id)
        .first()
    )


def upsert_template(db: Session, provider_id: str, data: Dict[str, Any]) -> models.AvailabilityTemplate:
    template = get_template(db, provider_id)
    if template is None:
        template = models.AvailabilityTemplate(provider_id=provider_id)
        db.add(template)
    template.timezone = data["timezone"]
    template.slot_minutes = data["slot_minutes"]
    template.weekly = data["weekly"]
    template.exceptions = data["exceptions"]
    db.commit()
    db.refresh(template)
    return template
