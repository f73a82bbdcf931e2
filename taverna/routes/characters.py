from flask import Blueprint

from taverna import db
from taverna.api_utils import api_success, created, validate_body
from taverna.errors import ForbiddenError, NotFoundError
from taverna.guards import authenticated, require_campaign_member
from taverna.models import Character
from taverna.schemas import CharacterCreate, CharacterUpdate

characters_bp = Blueprint('characters', __name__, url_prefix='/api')


def _apply_fields(character, values):
    """Copy validated sheet fields onto the model. Nested records
    (ability scores, HP, inventory, ...) are already plain dicts/lists."""
    for field, value in values.items():
        column = Character.FIELD_COLUMNS.get(field, field)
        setattr(character, column, value)


def _load_owned_character(character_id, identity):
    """The owner and the campaign's DM may see or edit a sheet; nobody else."""
    character = db.session.get(Character, character_id)
    if character is None:
        raise NotFoundError('Character not found')
    _campaign, is_dm, _role = require_campaign_member(character.campaign_id, identity)
    if character.player_id != identity.user_id and not is_dm:
        raise ForbiddenError('You can only access your own characters')
    return character


@characters_bp.route('/campaigns/<int:campaign_id>/characters')
@authenticated
def list_characters(identity, campaign_id):
    require_campaign_member(campaign_id, identity)
    characters = Character.query.filter_by(campaign_id=campaign_id).order_by(Character.name).all()
    return api_success([c.to_dict() for c in characters])


@characters_bp.route('/campaigns/<int:campaign_id>/characters', methods=['POST'])
@authenticated
def create_character(identity, campaign_id):
    require_campaign_member(campaign_id, identity)
    data = validate_body(CharacterCreate)

    character = Character(campaign_id=campaign_id, player_id=identity.user_id)
    _apply_fields(character, data.model_dump())
    db.session.add(character)
    db.session.commit()
    return created(character.to_dict())


@characters_bp.route('/characters/<int:character_id>')
@authenticated
def get_character(identity, character_id):
    character = _load_owned_character(character_id, identity)
    return api_success(character.to_dict())


@characters_bp.route('/characters/<int:character_id>', methods=['PATCH'])
@authenticated
def update_character(identity, character_id):
    character = _load_owned_character(character_id, identity)
    data = validate_body(CharacterUpdate)

    # Top-level fields the client sent; nested records are stored whole,
    # defaults included. Explicit nulls only make sense for the optional parts.
    nullable = {'currency', 'avatar_url'}
    changes = {k: v for k, v in data.model_dump().items()
               if k in data.model_fields_set and (v is not None or k in nullable)}
    _apply_fields(character, changes)
    db.session.commit()
    return api_success(character.to_dict())


@characters_bp.route('/characters/<int:character_id>', methods=['DELETE'])
@authenticated
def delete_character(identity, character_id):
    character = _load_owned_character(character_id, identity)
    db.session.delete(character)
    db.session.commit()
    return api_success({'deleted': True})
