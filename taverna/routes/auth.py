import logging
from datetime import datetime

from flask import Blueprint, session
from flask_login import login_user, logout_user

from taverna import db, limiter
from taverna.api_utils import api_success, created, validate_body
from taverna.errors import AuthError, ConflictError, ForbiddenError
from taverna.guards import authenticated
from taverna.models import AppSetting, Campaign, CampaignMember, Character, User
from taverna.schemas import LoginBody, PasswordChange, ProfileUpdate, RegisterBody

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/api')


@auth_bp.route('/auth/register', methods=['POST'])
@limiter.limit("5 per minute", methods=["POST"])
def register():
    # Admins can close registration from the settings page
    if AppSetting.get('allow_signup', 'true') != 'true':
        raise ForbiddenError('Registration is currently closed')

    data = validate_body(RegisterBody)
    email = data.email.strip().lower()

    if User.query.filter_by(email=email).first():
        raise ConflictError('Email is already registered')

    user = User(email=email, display_name=data.display_name.strip())
    user.set_password(data.password)
    user.last_login_at = datetime.utcnow()
    db.session.add(user)
    db.session.commit()

    # Log them straight in after registering
    login_user(user)
    logger.info('User %s registered', user.id)
    return created(user.to_dict(private=True))


@auth_bp.route('/auth/login', methods=['POST'])
@limiter.limit("5 per minute", methods=["POST"])
def login():
    data = validate_body(LoginBody)
    user = User.query.filter_by(email=data.email.strip().lower()).first()

    # Same message for unknown email and wrong password, so we don't leak which one it was
    if not user or not user.check_password(data.password):
        raise AuthError('Invalid email or password')

    if user.is_banned:
        reason = f': {user.ban_reason}' if user.ban_reason else ''
        raise ForbiddenError(f'This account has been banned{reason}')

    user.last_login_at = datetime.utcnow()
    db.session.commit()
    login_user(user)
    return api_success(user.to_dict(private=True))


@auth_bp.route('/auth/logout', methods=['POST'])
def logout():
    logout_user()
    session.clear()
    return api_success({'loggedOut': True})


@auth_bp.route('/users/me')
@authenticated
def get_profile(identity):
    user = db.session.get(User, identity.user_id)
    data = user.to_dict(private=True)
    data['_count'] = {
        'campaignsAsDM': Campaign.query.filter_by(dm_id=user.id).count(),
        'memberships': CampaignMember.query.filter_by(user_id=user.id).count(),
        'characters': Character.query.filter_by(player_id=user.id).count(),
    }
    return api_success(data)


@auth_bp.route('/users/me', methods=['PATCH'])
@authenticated
def update_profile(identity):
    data = validate_body(ProfileUpdate)
    user = db.session.get(User, identity.user_id)

    changes = data.model_dump(exclude_unset=True)
    if changes.get('display_name'):
        user.display_name = changes['display_name'].strip()
    if 'image' in changes:
        user.image = changes['image']

    db.session.commit()
    return api_success(user.to_dict(private=True))


@auth_bp.route('/users/me/password', methods=['POST'])
@authenticated
def change_password(identity):
    data = validate_body(PasswordChange)
    user = db.session.get(User, identity.user_id)

    if not user.check_password(data.current_password):
        raise ForbiddenError('Current password is incorrect')

    user.set_password(data.new_password)
    db.session.commit()
    return api_success({'passwordChanged': True})
