# middleware/error_logging.py
import logging
import traceback

from django.conf import settings
from django.http import JsonResponse

logger = logging.getLogger('consultancy_app.errors')


class ErrorLoggingMiddleware:
    """
    Logs unhandled exceptions to the error log and answers with a JSON 500.
    The exception detail is only returned while DEBUG is on.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        return self.get_response(request)

    def process_exception(self, request, exception):
        logger.error(
            f"{request.method} {request.path} 500 {exception.__class__.__name__}: {str(exception)}",
            extra={'method': request.method, 'path': request.path, 'status': 500,
                   'stack': traceback.format_exc()},
        )

        body = {'success': False, 'error': 'Internal server error'}
        if settings.DEBUG:
            body['detail'] = str(exception)
        return JsonResponse(body, status=500)
