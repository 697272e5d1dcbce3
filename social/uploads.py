"""
Cloudinary upload proxy.

Files arrive as Django UploadedFile objects, are checked against the allowed
MIME types and size limit, and are streamed to Cloudinary under the
``oausconnect`` folder. Clients only ever see the returned descriptors.
"""

import logging

import cloudinary
import cloudinary.uploader
import cloudinary.utils
from cloudinary.exceptions import Error as CloudinaryError
from django.conf import settings

from .errors import AppError, BadRequest, NotFound
from .validation import validate_upload

logger = logging.getLogger(__name__)

ALLOWED_FORMATS = ['jpg', 'jpeg', 'png', 'gif', 'mp4', 'mov', 'avi', 'pdf', 'doc', 'docx']
UPLOAD_TRANSFORMATION = [
    {'width': 1000, 'height': 1000, 'crop': 'limit', 'quality': 'auto:good'},
]

_configured = False


def _configure():
    global _configured
    if _configured:
        return
    storage = settings.CLOUDINARY_STORAGE
    if not storage.get('CLOUD_NAME'):
        raise AppError("File uploads are not configured", 503)
    cloudinary.config(
        cloud_name=storage['CLOUD_NAME'],
        api_key=storage['API_KEY'],
        api_secret=storage['API_SECRET'],
        secure=True,
    )
    _configured = True


def optimized_url(public_id, resource_type='image', **options):
    """Delivery URL with automatic quality and format unless overridden."""
    _configure()
    params = {'quality': 'auto:good', 'fetch_format': 'auto', 'resource_type': resource_type}
    params.update(options)
    url, _ = cloudinary.utils.cloudinary_url(public_id, **params)
    return url


def upload_file(uploaded_file):
    """Validate and upload one file; returns its descriptor dict."""
    validate_upload(uploaded_file)
    _configure()
    try:
        result = cloudinary.uploader.upload(
            uploaded_file,
            folder=settings.CLOUDINARY_FOLDER,
            resource_type='auto',
            allowed_formats=ALLOWED_FORMATS,
            transformation=UPLOAD_TRANSFORMATION,
        )
    except CloudinaryError as e:
        logger.error(f"Cloudinary upload failed for {uploaded_file.name}: {e}")
        raise AppError(f"Upload failed: {e}", 502)

    resource_type = result.get('resource_type', 'image')
    return {
        "url": result['secure_url'],
        "publicId": result['public_id'],
        "originalName": uploaded_file.name,
        "size": uploaded_file.size,
        "mimetype": uploaded_file.content_type,
        "resourceType": resource_type,
        "optimizedUrl": optimized_url(result['public_id'], resource_type=resource_type),
    }


def upload_files(files, max_count):
    if not files:
        raise BadRequest("No files uploaded")
    if len(files) > max_count:
        raise BadRequest(f"Too many files: at most {max_count} allowed")
    for uploaded_file in files:
        validate_upload(uploaded_file)
    return [upload_file(uploaded_file) for uploaded_file in files]


def delete_file(public_id):
    _configure()
    try:
        result = cloudinary.uploader.destroy(public_id)
    except CloudinaryError as e:
        logger.error(f"Cloudinary delete failed for {public_id}: {e}")
        raise AppError(f"Delete failed: {e}", 502)
    if result.get('result') == 'not found':
        raise NotFound("File not found")
    logger.info(f"Deleted Cloudinary asset {public_id}")
    return result
