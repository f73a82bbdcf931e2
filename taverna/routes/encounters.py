"""Encounter templates: fights the DM prepares ahead of a session.

Players never see these, so every route, reads included, is DM only.
"""

from flask import Blueprint

from taverna import db
from taverna.api_utils import api_success, created, validate_body
from taverna.errors import NotFoundError
from taverna.guards import authenticated, require_dm
from taverna.models import EncounterTemplate
from taverna.schemas import EncounterCreate, EncounterUpdate

encounters_bp = Blueprint('encounters', __name__, url_prefix='/api')

DM_ONLY = 'Only the DM can see encounter templates'


def _load_encounter(encounter_id, identity):
    encounter = db.session.get(EncounterTemplate, encounter_id)
    if encounter is None:
        raise NotFoundError('Encounter template not found')
    require_dm(encounter.campaign_id, identity, DM_ONLY)
    return encounter


@encounters_bp.route('/campaigns/<int:campaign_id>/encounters')
@authenticated
def list_encounters(identity, campaign_id):
    require_dm(campaign_id, identity, DM_ONLY)
    encounters = EncounterTemplate.query.filter_by(campaign_id=campaign_id) \
        .order_by(EncounterTemplate.name, EncounterTemplate.id).all()
    return api_success([e.to_dict() for e in encounters])


@encounters_bp.route('/campaigns/<int:campaign_id>/encounters', methods=['POST'])
@authenticated
def create_encounter(identity, campaign_id):
    require_dm(campaign_id, identity, DM_ONLY)
    data = validate_body(EncounterCreate)

    encounter = EncounterTemplate(
        campaign_id=campaign_id,
        name=data.name.strip(),
        monsters=[m.model_dump() for m in data.monsters],
        difficulty=data.difficulty,
        xp_total=data.xp_total,
        notes=data.notes,
        created_by=identity.user_id,
    )
    db.session.add(encounter)
    db.session.commit()
    return created(encounter.to_dict())


@encounters_bp.route('/encounters/<int:encounter_id>')
@authenticated
def get_encounter(identity, encounter_id):
    return api_success(_load_encounter(encounter_id, identity).to_dict())


@encounters_bp.route('/encounters/<int:encounter_id>', methods=['PATCH'])
@authenticated
def update_encounter(identity, encounter_id):
    encounter = _load_encounter(encounter_id, identity)
    data = validate_body(EncounterUpdate)

    # None means "not sent" here; none of these columns can be cleared
    for field, value in data.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(encounter, field, value)

    db.session.commit()
    return api_success(encounter.to_dict())


@encounters_bp.route('/encounters/<int:encounter_id>', methods=['DELETE'])
@authenticated
def delete_encounter(identity, encounter_id):
    encounter = _load_encounter(encounter_id, identity)
    db.session.delete(encounter)
    db.session.commit()
    return api_success({'deleted': True})
