from flask import Blueprint

from taverna import db
from taverna.api_utils import api_success, created, validate_body
from taverna.errors import NotFoundError
from taverna.guards import authenticated, require_campaign_member, require_dm
from taverna.models import TimelineEvent
from taverna.schemas import TimelineEventCreate, TimelineEventUpdate

timeline_bp = Blueprint('timeline', __name__, url_prefix='/api')

DM_ONLY = 'Only the DM can edit the timeline'

NULLABLE = {'in_game_date', 'icon'}


def _load_event(event_id, identity):
    event = db.session.get(TimelineEvent, event_id)
    if event is None:
        raise NotFoundError('Timeline event not found')
    require_dm(event.campaign_id, identity, DM_ONLY)
    return event


@timeline_bp.route('/campaigns/<int:campaign_id>/timeline')
@authenticated
def list_events(identity, campaign_id):
    require_campaign_member(campaign_id, identity)
    # Oldest first, the way a timeline reads
    events = TimelineEvent.query.filter_by(campaign_id=campaign_id) \
        .order_by(TimelineEvent.real_date, TimelineEvent.id).all()
    return api_success([e.to_dict() for e in events])


@timeline_bp.route('/campaigns/<int:campaign_id>/timeline', methods=['POST'])
@authenticated
def create_event(identity, campaign_id):
    require_dm(campaign_id, identity, DM_ONLY)
    data = validate_body(TimelineEventCreate)

    fields = data.model_dump()
    fields['title'] = fields['title'].strip()
    event = TimelineEvent(campaign_id=campaign_id, **fields)
    db.session.add(event)
    db.session.commit()
    return created(event.to_dict())


@timeline_bp.route('/timeline/<int:event_id>', methods=['PATCH'])
@authenticated
def update_event(identity, event_id):
    event = _load_event(event_id, identity)
    data = validate_body(TimelineEventUpdate)

    for field, value in data.model_dump(exclude_unset=True).items():
        if value is None and field not in NULLABLE:
            continue
        setattr(event, field, value)

    db.session.commit()
    return api_success(event.to_dict())


@timeline_bp.route('/timeline/<int:event_id>', methods=['DELETE'])
@authenticated
def delete_event(identity, event_id):
    event = _load_event(event_id, identity)
    db.session.delete(event)
    db.session.commit()
    return api_success({'deleted': True})
