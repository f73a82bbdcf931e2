from flask import Blueprint

from taverna import db
from taverna.api_utils import api_success, created, validate_body
from taverna.errors import NotFoundError, ValidationError
from taverna.guards import authenticated, require_campaign_member, require_dm
from taverna.lore import render_lore, unique_slug
from taverna.models import LoreEntry
from taverna.schemas import LoreCreate, LoreUpdate

lore_bp = Blueprint('lore', __name__, url_prefix='/api')

DM_ONLY = 'Only the DM can edit the lore wiki'


def _load_entry(entry_id, identity, dm_only=False):
    """Returns (entry, is_dm). Secret entries are invisible to players."""
    entry = db.session.get(LoreEntry, entry_id)
    if entry is None:
        raise NotFoundError('Lore entry not found')
    if dm_only:
        require_dm(entry.campaign_id, identity, DM_ONLY)
        return entry, True
    _campaign, is_dm, _role = require_campaign_member(entry.campaign_id, identity)
    if entry.is_secret and not is_dm:
        raise NotFoundError('Lore entry not found')
    return entry, is_dm


def _check_parent(campaign_id, parent_id, entry_id=None):
    if parent_id is None:
        return
    if parent_id == entry_id:
        raise ValidationError('An entry cannot be its own parent')
    parent = db.session.get(LoreEntry, parent_id)
    if parent is None or parent.campaign_id != campaign_id:
        raise ValidationError('Parent entry not found in this campaign')


@lore_bp.route('/campaigns/<int:campaign_id>/lore')
@authenticated
def list_lore(identity, campaign_id):
    _campaign, is_dm, _role = require_campaign_member(campaign_id, identity)
    query = LoreEntry.query.filter_by(campaign_id=campaign_id)
    if not is_dm:
        query = query.filter_by(is_secret=False)
    entries = query.order_by(LoreEntry.updated_at.desc(), LoreEntry.id.desc()).all()
    return api_success([e.to_dict() for e in entries])


@lore_bp.route('/campaigns/<int:campaign_id>/lore', methods=['POST'])
@authenticated
def create_lore(identity, campaign_id):
    require_dm(campaign_id, identity, DM_ONLY)
    data = validate_body(LoreCreate)
    _check_parent(campaign_id, data.parent_id)

    entry = LoreEntry(
        campaign_id=campaign_id,
        title=data.title.strip(),
        slug=unique_slug(campaign_id, data.title),
        category=data.category,
        content=data.content,
        summary=data.summary,
        tags=list(data.tags),
        is_secret=data.is_secret,
        parent_id=data.parent_id,
        created_by_id=identity.user_id,
    )
    db.session.add(entry)
    db.session.commit()
    return created(entry.to_dict())


@lore_bp.route('/lore/<int:entry_id>')
@authenticated
def get_lore(identity, entry_id):
    entry, is_dm = _load_entry(entry_id, identity)
    html, linked = render_lore(entry, is_dm)

    data = entry.to_dict()
    data['contentHtml'] = html
    data['linkedEntryIds'] = linked
    data['children'] = [{'id': c.id, 'title': c.title, 'slug': c.slug}
                        for c in entry.children if is_dm or not c.is_secret]
    return api_success(data)


@lore_bp.route('/lore/<int:entry_id>', methods=['PATCH'])
@authenticated
def update_lore(identity, entry_id):
    entry, _is_dm = _load_entry(entry_id, identity, dm_only=True)
    data = validate_body(LoreUpdate)
    changes = data.model_dump(exclude_unset=True)
    _check_parent(entry.campaign_id, changes.get('parent_id'), entry.id)

    # A new title means a new slug, so [[New Title]] links find it
    if changes.get('title'):
        changes['title'] = changes['title'].strip()
        if changes['title'] != entry.title:
            entry.slug = unique_slug(entry.campaign_id, changes['title'], exclude_id=entry.id)

    for field, value in changes.items():
        if value is None and field != 'parent_id':
            continue
        setattr(entry, field, value)

    db.session.commit()
    return api_success(entry.to_dict())


@lore_bp.route('/lore/<int:entry_id>', methods=['DELETE'])
@authenticated
def delete_lore(identity, entry_id):
    entry, _is_dm = _load_entry(entry_id, identity, dm_only=True)
    db.session.delete(entry)
    db.session.commit()
    return api_success({'deleted': True})
