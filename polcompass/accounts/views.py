import logging
import re

from django.contrib.auth import login, logout
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST
from django.http import JsonResponse

from core.authentication import FirebaseAuthentication, split_name
from core.catalog import get_scoring_catalog
from core.decorators import firebase_login_required
from core.middleware import invalidate_profile
from core.quiz_data import answer_label, get_question
from core.scoring import display_scores
from core.services import db
from core.services.results import snapshot_scores
from core.utils import BadRequest, error_response, method_not_allowed, parse_json_body

logger = logging.getLogger(__name__)

USERNAME_PATTERN = re.compile(r'^[a-zA-Z0-9_]+$')
USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 30
DISPLAY_NAME_MAX_LENGTH = 60
FEED_LIMIT = 50


def public_profile_data(profile):
    """Fields safe to show other users."""
    return {
        'uid': profile['id'],
        'username': profile.get('username'),
        'display_name': profile.get('display_name'),
    }


def result_summary(uid):
    """Display-scale scores from the stored snapshot, or None."""
    result = db.get_user_result(uid)
    scores = snapshot_scores(result)
    if scores is None:
        return None
    return {
        'scores': display_scores(scores),
        'answered_count': result.get('answered_count', 0),
        'updated_at': result.get('updated_at'),
    }


@csrf_exempt
def firebase_login(request):
    if request.method != 'POST':
        return method_not_allowed()

    try:
        data = parse_json_body(request)
        id_token = data.get('idToken')
        if not id_token:
            return error_response('No token provided')

        decoded_token = FirebaseAuthentication.verify_token(id_token)
        if not decoded_token:
            return error_response('Invalid token', status=401)

        uid = decoded_token['uid']
        user = FirebaseAuthentication.get_or_create_user(decoded_token)

        first_name, last_name = split_name(decoded_token.get('name', ''))
        created = db.ensure_user_profile(uid, decoded_token.get('email', ''), first_name, last_name)
        FirebaseAuthentication.sync_staff_flags(user, db.is_super_staff(uid))

        login(request, user, backend='django.contrib.auth.backends.ModelBackend')

        # Store UID in session for easy access
        request.session['uid'] = uid
        request.session.save()
        invalidate_profile(uid)

        logger.info(f"Signed in {uid} (new profile: {created})")
        return JsonResponse({'success': True, 'uid': uid, 'created': created})
    except BadRequest as e:
        return error_response(str(e))
    except Exception as e:
        logger.error(f"Login error: {e}")
        return error_response(str(e), status=500)


@csrf_exempt
def logout_view(request):
    """Logout from both Django and clear Firebase session"""
    request.session.pop('uid', None)
    logout(request)
    return JsonResponse({'success': True})


@require_GET
@firebase_login_required
def profile(request):
    uid = request.session.get('uid')
    try:
        user_profile = request.user_profile or db.get_user_profile(uid)
        if not user_profile:
            return error_response('Profile not found', status=404)

        return JsonResponse({
            'success': True,
            'profile': {
                **public_profile_data(user_profile),
                'email': user_profile.get('email'),
                'first_name': user_profile.get('first_name'),
                'last_name': user_profile.get('last_name'),
                'is_super_staff': db.is_super_staff(uid),
            },
            'result': result_summary(uid),
            'followers': len(db.get_follower_ids(uid)),
            'following': len(db.get_following_ids(uid)),
        })
    except Exception as e:
        logger.error(f"Loading profile for {uid} failed: {e}")
        return error_response(str(e), status=500)


@csrf_exempt
@require_POST
@firebase_login_required
def sync_profile(request):
    """Update username and/or display name."""
    uid = request.session.get('uid')
    try:
        data = parse_json_body(request)

        if 'username' in data:
            username = (data.get('username') or '').strip()
            if len(username) < USERNAME_MIN_LENGTH:
                return error_response(f'Username must be at least {USERNAME_MIN_LENGTH} characters')
            if len(username) > USERNAME_MAX_LENGTH:
                return error_response(f'Username must be at most {USERNAME_MAX_LENGTH} characters')
            if not USERNAME_PATTERN.match(username):
                return error_response('Username can only contain letters, numbers, and underscores')
            db.update_user_username(uid, username)

        if 'display_name' in data:
            display_name = (data.get('display_name') or '').strip()
            if len(display_name) > DISPLAY_NAME_MAX_LENGTH:
                return error_response(f'Display name must be at most {DISPLAY_NAME_MAX_LENGTH} characters')
            db.update_user_display_name(uid, display_name or None)

        invalidate_profile(uid)
        return JsonResponse({'success': True})
    except ValueError as e:
        return error_response(str(e))
    except Exception as e:
        logger.error(f"Profile sync for {uid} failed: {e}")
        return error_response(str(e), status=500)


@require_GET
def public_profile(request, username):
    try:
        target = db.get_user_by_username(username)
        if not target:
            return error_response('User not found', status=404)

        viewer = request.session.get('uid')
        target_uid = target['id']
        return JsonResponse({
            'success': True,
            'profile': public_profile_data(target),
            'result': result_summary(target_uid),
            'followers': len(db.get_follower_ids(target_uid)),
            'following': len(db.get_following_ids(target_uid)),
            'is_following': bool(viewer) and viewer != target_uid and db.is_following(viewer, target_uid),
            'is_self': viewer == target_uid,
        })
    except Exception as e:
        logger.error(f"Loading public profile {username} failed: {e}")
        return error_response(str(e), status=500)


@csrf_exempt
@require_POST
@firebase_login_required
def toggle_follow(request, username):
    uid = request.session.get('uid')
    try:
        target = db.get_user_by_username(username)
        if not target:
            return error_response('User not found', status=404)

        following = db.toggle_follow(uid, target['id'])
        return JsonResponse({
            'success': True,
            'following': following,
            'followers': len(db.get_follower_ids(target['id'])),
        })
    except ValueError as e:
        return error_response(str(e))
    except Exception as e:
        logger.error(f"Follow toggle {uid} -> {username} failed: {e}")
        return error_response(str(e), status=500)


def _follow_list(username, direction):
    target = db.get_user_by_username(username)
    if not target:
        return error_response('User not found', status=404)

    if direction == 'followers':
        uids = db.get_follower_ids(target['id'])
    else:
        uids = db.get_following_ids(target['id'])

    users = [public_profile_data(p) for p in db.get_follow_profiles(uids)]
    return JsonResponse({'success': True, 'username': username, direction: users})


@require_GET
def followers(request, username):
    try:
        return _follow_list(username, 'followers')
    except Exception as e:
        logger.error(f"Listing followers of {username} failed: {e}")
        return error_response(str(e), status=500)


@require_GET
def following(request, username):
    try:
        return _follow_list(username, 'following')
    except Exception as e:
        logger.error(f"Listing following of {username} failed: {e}")
        return error_response(str(e), status=500)


@require_GET
@firebase_login_required
def feed(request):
    """Latest answers from the people the user follows, and the user's own."""
    uid = request.session.get('uid')
    try:
        limit = min(int(request.GET.get('limit', FEED_LIMIT)), FEED_LIMIT)
    except ValueError:
        return error_response('limit must be a number')

    try:
        catalog = get_scoring_catalog()
        posts = []
        for post in db.get_feed_posts(uid, limit=limit):
            question = get_question(post['question_id'], catalog)
            if not question:
                continue
            posts.append({
                'id': post['id'],
                'author': public_profile_data(post['profile']),
                'question_id': post['question_id'],
                'question': question.get('text', ''),
                'axis': question.get('axis'),
                'value': post['value'],
                'label': answer_label(question, post['value']),
                'updated_at': post['updated_at'],
            })
        return JsonResponse({'success': True, 'posts': posts})
    except Exception as e:
        logger.error(f"Building feed for {uid} failed: {e}")
        return error_response(str(e), status=500)
