from flask import Blueprint

from taverna import db
from taverna.api_utils import api_success, created, validate_body
from taverna.errors import NotFoundError
from taverna.fog import blank_grid, reset_fog, reveal_cells, scene_for_viewer
from taverna.guards import authenticated, require_campaign_member, require_dm
from taverna.models import MapDrawing, MapScene, MapToken
from taverna.schemas import DrawingCreate, FogReveal, SceneCreate, SceneUpdate, TokenCreate, TokenUpdate

scenes_bp = Blueprint('scenes', __name__, url_prefix='/api')

DM_ONLY = 'Only the DM can edit the map'


def _load_scene(scene_id, identity, dm_only=False):
    """Returns (scene, is_dm). With dm_only=True anyone but the DM gets a 403."""
    scene = db.session.get(MapScene, scene_id)
    if scene is None:
        raise NotFoundError('Scene not found')
    if dm_only:
        require_dm(scene.campaign_id, identity, DM_ONLY)
        return scene, True
    _campaign, is_dm, _role = require_campaign_member(scene.campaign_id, identity)
    return scene, is_dm


# ── Scenes ───────────────────────────────────────────────────────────────────

@scenes_bp.route('/campaigns/<int:campaign_id>/scenes')
@authenticated
def list_scenes(identity, campaign_id):
    _campaign, is_dm, _role = require_campaign_member(campaign_id, identity)
    scenes = MapScene.query.filter_by(campaign_id=campaign_id).order_by(MapScene.created_at).all()
    return api_success([scene_for_viewer(s, is_dm) for s in scenes])


@scenes_bp.route('/campaigns/<int:campaign_id>/scenes', methods=['POST'])
@authenticated
def create_scene(identity, campaign_id):
    require_dm(campaign_id, identity, DM_ONLY)
    data = validate_body(SceneCreate)

    scene = MapScene(campaign_id=campaign_id, **data.model_dump())
    # Everything starts hidden
    scene.fog_revealed = blank_grid(scene.height, scene.width)
    db.session.add(scene)
    db.session.commit()
    return created(scene.to_dict())


@scenes_bp.route('/scenes/<int:scene_id>')
@authenticated
def get_scene(identity, scene_id):
    scene, is_dm = _load_scene(scene_id, identity)
    return api_success(scene_for_viewer(scene, is_dm))


@scenes_bp.route('/scenes/<int:scene_id>', methods=['PATCH'])
@authenticated
def update_scene(identity, scene_id):
    scene, _is_dm = _load_scene(scene_id, identity, dm_only=True)
    data = validate_body(SceneUpdate)

    # Resizing leaves the fog grid alone; a fog reset re-sizes it
    for field, value in data.model_dump(exclude_unset=True).items():
        if value is None and field in ('name', 'width', 'height'):
            continue
        setattr(scene, field, value)

    db.session.commit()
    return api_success(scene.to_dict())


@scenes_bp.route('/scenes/<int:scene_id>', methods=['DELETE'])
@authenticated
def delete_scene(identity, scene_id):
    scene, _is_dm = _load_scene(scene_id, identity, dm_only=True)
    db.session.delete(scene)
    db.session.commit()
    return api_success({'deleted': True})


# ── Fog of war ───────────────────────────────────────────────────────────────

@scenes_bp.route('/scenes/<int:scene_id>/fog', methods=['POST'])
@authenticated
def reveal_fog(identity, scene_id):
    scene, _is_dm = _load_scene(scene_id, identity, dm_only=True)
    data = validate_body(FogReveal)

    scene.fog_revealed = reveal_cells(scene.fog_revealed, [c.model_dump() for c in data.cells])
    db.session.commit()
    return api_success({'fogRevealed': scene.fog_revealed})


@scenes_bp.route('/scenes/<int:scene_id>/fog', methods=['DELETE'])
@authenticated
def clear_fog(identity, scene_id):
    scene, _is_dm = _load_scene(scene_id, identity, dm_only=True)
    reset_fog(scene)
    db.session.commit()
    return api_success({'fogRevealed': scene.fog_revealed})


# ── Tokens ───────────────────────────────────────────────────────────────────

@scenes_bp.route('/scenes/<int:scene_id>/tokens', methods=['POST'])
@authenticated
def add_token(identity, scene_id):
    scene, _is_dm = _load_scene(scene_id, identity, dm_only=True)
    data = validate_body(TokenCreate)

    token = MapToken(scene_id=scene.id, **data.model_dump())
    db.session.add(token)
    db.session.commit()
    return created(token.to_dict())


def _load_token(token_id, identity):
    token = db.session.get(MapToken, token_id)
    if token is None:
        raise NotFoundError('Token not found')
    require_dm(token.scene.campaign_id, identity, DM_ONLY)
    return token


@scenes_bp.route('/tokens/<int:token_id>', methods=['PATCH'])
@authenticated
def update_token(identity, token_id):
    token = _load_token(token_id, identity)
    data = validate_body(TokenUpdate)

    for field, value in data.model_dump(exclude_unset=True).items():
        if value is None and field not in ('character_id', 'hp', 'image_url'):
            continue
        setattr(token, field, value)

    db.session.commit()
    return api_success(token.to_dict())


@scenes_bp.route('/tokens/<int:token_id>', methods=['DELETE'])
@authenticated
def delete_token(identity, token_id):
    token = _load_token(token_id, identity)
    db.session.delete(token)
    db.session.commit()
    return api_success({'deleted': True})


# ── Drawings ─────────────────────────────────────────────────────────────────

@scenes_bp.route('/scenes/<int:scene_id>/drawings', methods=['POST'])
@authenticated
def add_drawing(identity, scene_id):
    scene, _is_dm = _load_scene(scene_id, identity, dm_only=True)
    data = validate_body(DrawingCreate)

    drawing = MapDrawing(scene_id=scene.id, **data.model_dump())
    db.session.add(drawing)
    db.session.commit()
    return created(drawing.to_dict())


@scenes_bp.route('/drawings/<int:drawing_id>', methods=['DELETE'])
@authenticated
def delete_drawing(identity, drawing_id):
    drawing = db.session.get(MapDrawing, drawing_id)
    if drawing is None:
        raise NotFoundError('Drawing not found')
    require_dm(drawing.scene.campaign_id, identity, DM_ONLY)
    db.session.delete(drawing)
    db.session.commit()
    return api_success({'deleted': True})
