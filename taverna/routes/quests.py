from flask import Blueprint

from taverna import db
from taverna.api_utils import api_success, created, validate_body
from taverna.errors import NotFoundError, ValidationError
from taverna.guards import authenticated, require_campaign_member, require_dm
from taverna.models import Quest, QuestObjective, QuestVote
from taverna.schemas import ObjectiveUpdate, QuestCreate, QuestUpdate, QuestVoteBody

quests_bp = Blueprint('quests', __name__, url_prefix='/api')

DM_ONLY = 'Only the DM can manage quests'


def _load_quest(quest_id, identity, dm_only=False):
    """Returns (quest, is_dm). Players can't see HIDDEN quests at all."""
    quest = db.session.get(Quest, quest_id)
    if quest is None:
        raise NotFoundError('Quest not found')
    if dm_only:
        require_dm(quest.campaign_id, identity, DM_ONLY)
        return quest, True
    _campaign, is_dm, _role = require_campaign_member(quest.campaign_id, identity)
    if quest.status == 'HIDDEN' and not is_dm:
        raise NotFoundError('Quest not found')
    return quest, is_dm


def _check_same_campaign(campaign_id, quest_id, label):
    """Parent and branch quests must live in the same campaign."""
    if quest_id is None:
        return
    other = db.session.get(Quest, quest_id)
    if other is None or other.campaign_id != campaign_id:
        raise ValidationError(f'{label} quest not found in this campaign')


@quests_bp.route('/campaigns/<int:campaign_id>/quests')
@authenticated
def list_quests(identity, campaign_id):
    _campaign, is_dm, _role = require_campaign_member(campaign_id, identity)
    query = Quest.query.filter_by(campaign_id=campaign_id)
    if not is_dm:
        query = query.filter(Quest.status != 'HIDDEN')
    quests = query.order_by(Quest.priority.desc(), Quest.sort_order, Quest.id).all()
    return api_success([q.to_dict() for q in quests])


@quests_bp.route('/campaigns/<int:campaign_id>/quests', methods=['POST'])
@authenticated
def create_quest(identity, campaign_id):
    require_dm(campaign_id, identity, DM_ONLY)
    data = validate_body(QuestCreate)
    _check_same_campaign(campaign_id, data.parent_id, 'Parent')
    for objective in data.objectives:
        _check_same_campaign(campaign_id, objective.branch_quest_id, 'Branch')

    quest = Quest(
        campaign_id=campaign_id,
        title=data.title.strip(),
        description=data.description,
        status=data.status,
        priority=data.priority,
        reward_xp=data.reward_xp,
        reward_gold=data.reward_gold,
        reward_items=list(data.reward_items),
        parent_id=data.parent_id,
        sort_order=Quest.query.filter_by(campaign_id=campaign_id).count(),
    )
    for position, objective in enumerate(data.objectives):
        quest.objectives.append(QuestObjective(
            title=objective.title,
            description=objective.description,
            branch_quest_id=objective.branch_quest_id,
            sort_order=position,
        ))
    db.session.add(quest)
    db.session.commit()
    return created(quest.to_dict())


@quests_bp.route('/quests/<int:quest_id>')
@authenticated
def get_quest(identity, quest_id):
    quest, _is_dm = _load_quest(quest_id, identity)
    return api_success(quest.to_dict())


@quests_bp.route('/quests/<int:quest_id>', methods=['PATCH'])
@authenticated
def update_quest(identity, quest_id):
    quest, _is_dm = _load_quest(quest_id, identity, dm_only=True)
    data = validate_body(QuestUpdate)
    changes = data.model_dump(exclude_unset=True)

    if changes.get('parent_id') is not None:
        if changes['parent_id'] == quest.id:
            raise ValidationError('A quest cannot be its own parent')
        _check_same_campaign(quest.campaign_id, changes['parent_id'], 'Parent')

    for field, value in changes.items():
        if value is None and field != 'parent_id':
            continue
        setattr(quest, field, value)

    db.session.commit()
    return api_success(quest.to_dict())


@quests_bp.route('/quests/<int:quest_id>', methods=['DELETE'])
@authenticated
def delete_quest(identity, quest_id):
    quest, _is_dm = _load_quest(quest_id, identity, dm_only=True)
    # Sub-quests and branch links outlive their parent
    for child in quest.children:
        child.parent_id = None
    QuestObjective.query.filter_by(branch_quest_id=quest.id).update({'branch_quest_id': None})
    db.session.delete(quest)
    db.session.commit()
    return api_success({'deleted': True})


@quests_bp.route('/quests/<int:quest_id>/objectives', methods=['PATCH'])
@authenticated
def update_objective(identity, quest_id):
    quest, _is_dm = _load_quest(quest_id, identity, dm_only=True)
    data = validate_body(ObjectiveUpdate)

    objective = db.session.get(QuestObjective, data.objective_id)
    if objective is None or objective.quest_id != quest.id:
        raise NotFoundError('Objective not found')

    if data.is_completed is not None:
        objective.is_completed = data.is_completed
    if data.is_failed is not None:
        objective.is_failed = data.is_failed

    # Finishing this objective opens up the quest it branches to
    if data.is_completed and objective.branch_quest_id:
        branch = db.session.get(Quest, objective.branch_quest_id)
        if branch is not None:
            branch.status = 'AVAILABLE'

    db.session.commit()
    return api_success(objective.to_dict())


@quests_bp.route('/quests/<int:quest_id>/vote', methods=['POST'])
@authenticated
def vote_on_quest(identity, quest_id):
    quest, _is_dm = _load_quest(quest_id, identity)
    data = validate_body(QuestVoteBody)

    vote = QuestVote.query.filter_by(quest_id=quest.id, user_id=identity.user_id).first()
    if vote is None:
        vote = QuestVote(quest_id=quest.id, user_id=identity.user_id)
        db.session.add(vote)
    vote.vote = data.vote
    db.session.commit()
    return api_success(quest.to_dict())
