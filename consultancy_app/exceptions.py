# exceptions.py
from rest_framework import status


class BackofficeError(Exception):
    """Base class for errors that map onto an API error response."""
    status_code = status.HTTP_400_BAD_REQUEST
    code = 'error'
    default_message = 'Request could not be processed'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(BackofficeError):
    status_code = status.HTTP_404_NOT_FOUND
    code = 'not_found'
    default_message = 'Record not found'


class InvalidAmountError(BackofficeError):
    code = 'invalid_amount'
    default_message = 'Invalid amount'

    def __init__(self, message=None, record_id=None):
        self.record_id = record_id
        super().__init__(message)


class InvalidCredentialsError(BackofficeError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = 'invalid_credentials'
    default_message = 'Invalid credentials'


class PasswordChangeError(BackofficeError):
    code = 'password_change_failed'

    MESSAGES = {
        'mismatch': 'New password and confirm password do not match',
        'incorrect_old_password': 'Old password is incorrect',
        'unchanged': 'New password must be different from the old password',
    }

    def __init__(self, reason):
        self.reason = reason
        super().__init__(self.MESSAGES.get(reason, 'Password could not be changed'))


class ConflictError(BackofficeError):
    status_code = status.HTTP_409_CONFLICT
    code = 'conflict'
    default_message = 'Conflicting record exists'
