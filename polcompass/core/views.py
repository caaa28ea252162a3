import logging

from django.conf import settings
from django.http import JsonResponse
from firebase_admin import auth

from .decorators import cache_control_header, firebase_login_required
from .quiz_data import AXES

logger = logging.getLogger(__name__)


@cache_control_header(max_age=3600, public=True)
def home(request):
    """Index of the JSON API."""
    return JsonResponse({
        'success': True,
        'name': 'polcompass',
        'axes': AXES,
        'endpoints': {
            'questions': '/quiz/api/questions/',
            'answers': '/quiz/api/answers/',
            'results': '/quiz/api/results/',
            'party_match': '/quiz/api/party-match/',
            'hot_topics': '/hot-topics/api/',
            'insights': '/insights/api/',
            'login': '/accounts/api/login/',
        },
    })


def firebase_config(request):
    """Web SDK config for the sign-in page."""
    return JsonResponse({'success': True, 'config': settings.FIREBASE_CLIENT_CONFIG})


@firebase_login_required
def get_firebase_token(request):
    """
    Generate a Firebase Custom Token for the logged-in user.
    This allows the frontend to authenticate with Firebase using the Django session.
    """
    try:
        custom_token = auth.create_custom_token(request.session['uid'])
        # bytes in some firebase_admin versions
        if isinstance(custom_token, bytes):
            custom_token = custom_token.decode('utf-8')
        return JsonResponse({'success': True, 'token': custom_token})
    except Exception as e:
        logger.error(f"Error generating custom token: {e}")
        return JsonResponse({'success': False, 'error': str(e)}, status=500)
