from flask import Blueprint

from taverna import db, limiter
from taverna.api_utils import api_success, created, validate_body
from taverna.dice import roll, roll_on_table
from taverna.errors import ForbiddenError, NotFoundError
from taverna.guards import authenticated, require_campaign_member
from taverna.models import RollableTable
from taverna.schemas import DiceRoll, RollableTableCreate

tables_bp = Blueprint('tables', __name__, url_prefix='/api')


def _load_table(table_id, identity):
    """Returns (table, is_dm) after checking campaign membership."""
    table = db.session.get(RollableTable, table_id)
    if table is None:
        raise NotFoundError('Rollable table not found')
    _campaign, is_dm, _role = require_campaign_member(table.campaign_id, identity)
    return table, is_dm


# ── Free-standing dice ───────────────────────────────────────────────────────

@tables_bp.route('/dice/roll', methods=['POST'])
@limiter.limit("60 per minute")
@authenticated
def roll_dice(identity):
    data = validate_body(DiceRoll)
    result = {
        'formula': data.formula,
        'label': data.label,
        'characterName': data.character_name,
    }
    result.update(roll(data.formula))
    return api_success(result)


# ── Rollable tables ──────────────────────────────────────────────────────────

@tables_bp.route('/campaigns/<int:campaign_id>/tables')
@authenticated
def list_tables(identity, campaign_id):
    require_campaign_member(campaign_id, identity)
    tables = RollableTable.query.filter_by(campaign_id=campaign_id).order_by(RollableTable.name).all()
    return api_success([t.to_dict() for t in tables])


@tables_bp.route('/campaigns/<int:campaign_id>/tables', methods=['POST'])
@authenticated
def create_table(identity, campaign_id):
    require_campaign_member(campaign_id, identity)
    data = validate_body(RollableTableCreate)

    table = RollableTable(
        campaign_id=campaign_id,
        name=data.name.strip(),
        description=data.description,
        entries=[e.model_dump() for e in data.entries],
        created_by=identity.user_id,
    )
    db.session.add(table)
    db.session.commit()
    return created(table.to_dict())


@tables_bp.route('/tables/<int:table_id>')
@authenticated
def get_table(identity, table_id):
    table, _is_dm = _load_table(table_id, identity)
    return api_success(table.to_dict())


@tables_bp.route('/tables/<int:table_id>', methods=['DELETE'])
@authenticated
def delete_table(identity, table_id):
    table, is_dm = _load_table(table_id, identity)
    if table.created_by != identity.user_id and not is_dm:
        raise ForbiddenError('Only the creator or the DM can delete this table')
    db.session.delete(table)
    db.session.commit()
    return api_success({'deleted': True})


@tables_bp.route('/tables/<int:table_id>/roll', methods=['POST'])
@limiter.limit("60 per minute")
@authenticated
def roll_table(identity, table_id):
    table, _is_dm = _load_table(table_id, identity)
    outcome = roll_on_table(table.entries or [])
    if outcome['formula'] is None:
        return api_success({'result': outcome['result'], 'roll': 0})

    outcome['tableName'] = table.name
    outcome['entries'] = table.entries
    return api_success(outcome)
