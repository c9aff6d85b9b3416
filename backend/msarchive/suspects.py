"""
Composite writes for a suspect and the rows it owns (weapons, prior history).

Two write modes (settings: suspects.write_mode):

atomic
    Every weapon payload and the history payload are validated before
    anything is written, then the suspect, its weapons and its history go
    into one transaction. Any failure leaves the store as it was.

best_effort
    The suspect row is committed first. Weapons and history are then written
    one at a time; a child that fails validation or is refused by the store
    is logged and skipped, and the call still succeeds with whatever was
    persisted.
"""
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from msarchive.logging_config import get_logger
from msarchive.models import Suspect, SuspectPriorHistory, SuspectWeapon
from msarchive.schemas import PriorHistoryIn, SuspectFields, WeaponIn

logger = get_logger(__name__)

ATOMIC = "atomic"
BEST_EFFORT = "best_effort"


class ChildPayloadError(ValueError):
    """A child payload in an atomic composite write failed validation."""

    def __init__(self, where: str, error: ValidationError):
        self.error = error
        super().__init__(f"{where}: {_first_message(error)}")


class WeaponPayloadError(ChildPayloadError):
    def __init__(self, index: int, error: ValidationError):
        self.index = index
        super().__init__(f"weapons[{index}]", error)


class HistoryPayloadError(ChildPayloadError):
    def __init__(self, error: ValidationError):
        super().__init__("history", error)


def _first_message(error: ValidationError) -> str:
    first = error.errors()[0]
    loc = ".".join(str(part) for part in first.get("loc", ()))
    return f"{loc}: {first.get('msg')}" if loc else first.get("msg", str(error))


def _validate_weapons(weapons: List[Any]) -> List[WeaponIn]:
    validated = []
    for index, raw in enumerate(weapons):
        try:
            validated.append(WeaponIn.model_validate(raw))
        except ValidationError as e:
            raise WeaponPayloadError(index, e) from e
    return validated


def _validate_history(history: Any) -> Optional[PriorHistoryIn]:
    if history is None:
        return None
    try:
        return PriorHistoryIn.model_validate(history)
    except ValidationError as e:
        raise HistoryPayloadError(e) from e


def _scalar_fields(fields: SuspectFields) -> Dict[str, Any]:
    return fields.model_dump(include=set(SuspectFields.model_fields))


def get_suspect(db: Session, suspect_id: str) -> Optional[Suspect]:
    """Single suspect with weapons and history loaded."""
    return db.execute(
        select(Suspect)
        .options(selectinload(Suspect.weapons), selectinload(Suspect.history))
        .where(Suspect.id == suspect_id)
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()


def list_suspects(db: Session, incident_id: str) -> List[Suspect]:
    """All suspects of an incident, oldest first, with children loaded."""
    return list(
        db.execute(
            select(Suspect)
            .options(selectinload(Suspect.weapons), selectinload(Suspect.history))
            .where(Suspect.incident_id == incident_id)
            .order_by(Suspect.created_at.asc(), Suspect.id.asc())
        ).scalars()
    )


def _insert_children_best_effort(
    db: Session,
    suspect_id: str,
    weapons: List[Any],
    history: Any,
    upsert_history: bool,
) -> None:
    for index, raw in enumerate(weapons):
        try:
            weapon = WeaponIn.model_validate(raw)
            db.add(SuspectWeapon(suspect_id=suspect_id, **weapon.model_dump()))
            db.commit()
        except ValidationError as e:
            logger.error(f"Weapon insert skipped for suspect {suspect_id} (weapons[{index}]): {_first_message(e)}")
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Weapon insert failed for suspect {suspect_id} (weapons[{index}]): {e}")

    if history is None:
        return

    try:
        _write_history(db, suspect_id, PriorHistoryIn.model_validate(history), upsert_history)
        db.commit()
    except ValidationError as e:
        logger.error(f"Prior history write skipped for suspect {suspect_id}: {_first_message(e)}")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Prior history write failed for suspect {suspect_id}: {e}")


def _write_history(db: Session, suspect_id: str, history: PriorHistoryIn, upsert: bool) -> None:
    existing = db.get(SuspectPriorHistory, suspect_id) if upsert else None
    if existing:
        for key, value in history.model_dump().items():
            setattr(existing, key, value)
    else:
        db.add(SuspectPriorHistory(suspect_id=suspect_id, **history.model_dump()))


def create_suspect(
    db: Session,
    incident_id: str,
    fields: SuspectFields,
    weapons: List[Any],
    history: Any,
    mode: str = ATOMIC,
) -> Suspect:
    if mode == ATOMIC:
        validated = _validate_weapons(weapons)
        prior = _validate_history(history)
        suspect = Suspect(incident_id=incident_id, **_scalar_fields(fields))
        suspect.weapons = [SuspectWeapon(**w.model_dump()) for w in validated]
        if prior is not None:
            suspect.history = SuspectPriorHistory(**prior.model_dump())
        db.add(suspect)
        try:
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise
        logger.info(f"Created suspect {suspect.id} for incident {incident_id} with {len(validated)} weapon(s)")
        return get_suspect(db, suspect.id)

    suspect = Suspect(incident_id=incident_id, **_scalar_fields(fields))
    db.add(suspect)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    suspect_id = suspect.id
    logger.info(f"Created suspect {suspect_id} for incident {incident_id} (best effort children)")

    _insert_children_best_effort(db, suspect_id, weapons, history, upsert_history=False)
    return get_suspect(db, suspect_id)


def update_suspect(
    db: Session,
    suspect: Suspect,
    fields: SuspectFields,
    weapons: List[Any],
    history: Any,
    mode: str = ATOMIC,
) -> Suspect:
    """
    Replace scalar fields, replace the whole weapons set, upsert history.
    History is left alone when the payload carries none.
    """
    suspect_id = suspect.id

    if mode == ATOMIC:
        validated = _validate_weapons(weapons)
        prior = _validate_history(history)
        for key, value in _scalar_fields(fields).items():
            setattr(suspect, key, value)
        suspect.weapons = [SuspectWeapon(**w.model_dump()) for w in validated]
        if prior is not None:
            if suspect.history is not None:
                for key, value in prior.model_dump().items():
                    setattr(suspect.history, key, value)
            else:
                suspect.history = SuspectPriorHistory(**prior.model_dump())
        try:
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise
        logger.info(f"Updated suspect {suspect_id} with {len(validated)} weapon(s)")
        return get_suspect(db, suspect_id)

    for key, value in _scalar_fields(fields).items():
        setattr(suspect, key, value)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    try:
        stale = db.execute(select(SuspectWeapon).where(SuspectWeapon.suspect_id == suspect_id)).scalars().all()
        for weapon in stale:
            db.delete(weapon)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Clearing weapons failed for suspect {suspect_id}: {e}")

    _insert_children_best_effort(db, suspect_id, weapons, history, upsert_history=True)
    logger.info(f"Updated suspect {suspect_id} (best effort children)")
    return get_suspect(db, suspect_id)
