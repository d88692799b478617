from flask import current_app

from zinderr.extensions import db
from zinderr.models.location_update import LocationUpdate
from zinderr.utils.exceptions import Forbidden, InvalidState
from zinderr.utils.unit_of_work import unit_of_work
from zinderr.utils.validators import coordinate, non_negative


def share_location(errand, user, latitude, longitude, accuracy=None):
    if not errand.assigned_runner_id or not errand.is_participant(user.id):
        raise Forbidden("Only the poster and the assigned runner can share location")
    if errand.status != "in_progress":
        raise InvalidState("share location", errand.status, entity=errand.id)

    update = LocationUpdate(
        errand_id=errand.id,
        user_id=user.id,
        latitude=coordinate(latitude, "latitude", 90),
        longitude=coordinate(longitude, "longitude", 180),
        accuracy=non_negative(accuracy, "accuracy"),
    )
    with unit_of_work("share location", entity=errand.id):
        db.session.add(update)
    return update


def location_history(errand, user, limit=None):
    if not errand.is_participant(user.id):
        raise Forbidden("Only the poster and the assigned runner can see location updates")
    limit = limit or current_app.config.get("LOCATION_HISTORY_LIMIT", 10)
    return (
        LocationUpdate.query
        .filter_by(errand_id=errand.id)
        .order_by(LocationUpdate.location_timestamp.desc())
        .limit(limit)
        .all()
    )
