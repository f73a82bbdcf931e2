from flask import Blueprint

from taverna import db
from taverna.api_utils import api_success, created, validate_body
from taverna.errors import NotFoundError
from taverna.guards import authenticated, require_campaign_member, require_dm
from taverna.models import NPC
from taverna.schemas import NPCCreate, NPCUpdate

npcs_bp = Blueprint('npcs', __name__, url_prefix='/api')

DM_ONLY = 'Only the DM can manage NPCs'

# Columns that may be cleared with an explicit null
NULLABLE = {'stats', 'hp', 'armor_class', 'location', 'image_url'}


def _load_npc(npc_id, identity, dm_only=False):
    npc = db.session.get(NPC, npc_id)
    if npc is None:
        raise NotFoundError('NPC not found')
    if dm_only:
        require_dm(npc.campaign_id, identity, DM_ONLY)
    else:
        require_campaign_member(npc.campaign_id, identity)
    return npc


@npcs_bp.route('/campaigns/<int:campaign_id>/npcs')
@authenticated
def list_npcs(identity, campaign_id):
    require_campaign_member(campaign_id, identity)
    npcs = NPC.query.filter_by(campaign_id=campaign_id).order_by(NPC.name, NPC.id).all()
    return api_success([n.to_dict() for n in npcs])


@npcs_bp.route('/campaigns/<int:campaign_id>/npcs', methods=['POST'])
@authenticated
def create_npc(identity, campaign_id):
    require_dm(campaign_id, identity, DM_ONLY)
    data = validate_body(NPCCreate)

    fields = data.model_dump()
    fields['name'] = fields['name'].strip()
    npc = NPC(campaign_id=campaign_id, **fields)
    db.session.add(npc)
    db.session.commit()
    return created(npc.to_dict())


@npcs_bp.route('/npcs/<int:npc_id>')
@authenticated
def get_npc(identity, npc_id):
    return api_success(_load_npc(npc_id, identity).to_dict())


@npcs_bp.route('/npcs/<int:npc_id>', methods=['PATCH'])
@authenticated
def update_npc(identity, npc_id):
    npc = _load_npc(npc_id, identity, dm_only=True)
    data = validate_body(NPCUpdate)

    for field, value in data.model_dump(exclude_unset=True).items():
        if value is None and field not in NULLABLE:
            continue
        setattr(npc, field, value)

    db.session.commit()
    return api_success(npc.to_dict())


@npcs_bp.route('/npcs/<int:npc_id>', methods=['DELETE'])
@authenticated
def delete_npc(identity, npc_id):
    npc = _load_npc(npc_id, identity, dm_only=True)
    db.session.delete(npc)
    db.session.commit()
    return api_success({'deleted': True})
