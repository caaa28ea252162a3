from functools import wraps

from django.http import JsonResponse
from django.utils.cache import patch_cache_control


def cache_control_header(max_age=300, s_maxage=None, public=False, private=False):
    """
    Decorator to set the Cache-Control header for a view.

    Usage:
        @cache_control_header(max_age=600, public=True)
        def my_view(request):
            ...

    :param max_age: Time in seconds for browser caching.
    :param s_maxage: Time in seconds for shared cache (CDN).
    :param public: Cachable by shared caches. Only for responses that do not depend on the user.
    :param private: Browser cache only.
    """
    def decorator(view_func):
        @wraps(view_func)
        def _wrapped_view(request, *args, **kwargs):
            response = view_func(request, *args, **kwargs)

            kwargs_dict = {'max_age': max_age}
            if s_maxage is not None:
                kwargs_dict['s_maxage'] = s_maxage
            if public:
                kwargs_dict['public'] = True
            if private:
                kwargs_dict['private'] = True

            patch_cache_control(response, **kwargs_dict)
            return response
        return _wrapped_view
    return decorator


def firebase_login_required(view_func):
    """JSON 401 unless the session carries a Firebase uid."""
    @wraps(view_func)
    def _wrapped_view(request, *args, **kwargs):
        if not request.session.get('uid'):
            return JsonResponse({'success': False, 'error': 'Authentication required'}, status=401)
        return view_func(request, *args, **kwargs)
    return _wrapped_view


def super_staff_required(view_func):
    """JSON 403 unless the signed-in user's profile has is_super_staff."""
    @wraps(view_func)
    def _wrapped_view(request, *args, **kwargs):
        uid = request.session.get('uid')
        if not uid:
            return JsonResponse({'success': False, 'error': 'Authentication required'}, status=401)

        from .services import db
        if not db.is_super_staff(uid):
            return JsonResponse({'success': False, 'error': 'Permission denied'}, status=403)
        return view_func(request, *args, **kwargs)
    return _wrapped_view
