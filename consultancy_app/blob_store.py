# blob_store.py
import logging
import uuid

from django.core.files.storage import default_storage
from django.db import transaction
from django.utils.text import get_valid_filename

logger = logging.getLogger(__name__)


def upload(file, folder):
    """Store an uploaded file under folder/ and return {'url', 'public_id'}."""
    name = f"{folder}/{uuid.uuid4().hex[:12]}_{get_valid_filename(file.name)}"
    public_id = default_storage.save(name, file)
    logger.info(f"Uploaded {public_id}")
    return {'url': default_storage.url(public_id), 'public_id': public_id}


def delete(public_id):
    if not public_id:
        return
    try:
        default_storage.delete(public_id)
    except OSError as e:
        logger.error(f"Error deleting blob {public_id}: {str(e)}")


def delete_on_commit(public_id):
    """Remove a blob once the surrounding transaction has committed."""
    if public_id:
        transaction.on_commit(lambda: delete(public_id))
