"""
Image stores used by the bulk question import.

A store takes a local file, a folder hint and a unique id and returns a
reference the frontend can resolve (a URL or a media-relative path). Any
failure is raised as ``UploadError`` so the import can abort the batch.

The active store is chosen by ``settings.EXAM_IMAGE_STORE`` (dotted path).
"""

import logging
import os
import time

import cloudinary.utils
import requests
from django.conf import settings
from django.core.files import File
from django.core.files.storage import default_storage
from django.utils.module_loading import import_string

from cores.exceptions import UploadError

logger = logging.getLogger(__name__)


class ImageStore:
    """Interface for question image storage."""

    def store(self, local_path: str, folder: str, public_id: str) -> str:
        raise NotImplementedError


class FileSystemImageStore(ImageStore):
    """Saves images through Django's ``default_storage`` (MEDIA_ROOT)."""

    def __init__(self, storage=None):
        self.storage = storage or default_storage

    def store(self, local_path: str, folder: str, public_id: str) -> str:
        extension = os.path.splitext(local_path)[1].lower()
        target_name = f"{folder}/{public_id}{extension}"
        try:
            with open(local_path, "rb") as fh:
                saved_name = self.storage.save(target_name, File(fh))
        except OSError as e:
            raise UploadError(f"Could not store image '{os.path.basename(local_path)}': {e}")

        reference = self.storage.url(saved_name)
        logger.info(f"Stored image {os.path.basename(local_path)} as {saved_name}")
        return reference


class CloudinaryImageStore(ImageStore):
    """
    Signed uploads to the Cloudinary REST API.

    Credentials come from CLOUDINARY_CLOUD_NAME / CLOUDINARY_API_KEY /
    CLOUDINARY_API_SECRET; the returned ``secure_url`` is the reference.
    """

    upload_url = "https://api.cloudinary.com/v1_1/{cloud_name}/image/upload"

    def __init__(self, cloud_name=None, api_key=None, api_secret=None, timeout=None):
        self.cloud_name = cloud_name or settings.CLOUDINARY_CLOUD_NAME
        self.api_key = api_key or settings.CLOUDINARY_API_KEY
        self.api_secret = api_secret or settings.CLOUDINARY_API_SECRET
        self.timeout = timeout or settings.CLOUDINARY_UPLOAD_TIMEOUT

    def sign(self, params: dict) -> str:
        return cloudinary.utils.api_sign_request(params, self.api_secret)

    def store(self, local_path: str, folder: str, public_id: str) -> str:
        if not all([self.cloud_name, self.api_key, self.api_secret]):
            logger.error("Cloudinary credentials missing in settings.")
            raise UploadError("Server misconfiguration: missing Cloudinary credentials")

        image_name = os.path.basename(local_path)
        params = {
            "folder": folder,
            "public_id": public_id,
            "timestamp": int(time.time()),
        }
        data = dict(params, api_key=self.api_key, signature=self.sign(params))
        url = self.upload_url.format(cloud_name=self.cloud_name)

        try:
            with open(local_path, "rb") as fh:
                resp = requests.post(url, data=data, files={"file": fh}, timeout=self.timeout)
        except requests.exceptions.Timeout:
            raise UploadError(f"Upload of image '{image_name}' timed out.")
        except requests.exceptions.ConnectionError:
            raise UploadError(f"Network error while uploading image '{image_name}'.")
        except OSError as e:
            raise UploadError(f"Could not read image '{image_name}': {e}")

        try:
            resp_data = resp.json()
        except ValueError:
            resp_data = {}

        if not resp.ok or "error" in resp_data:
            message = resp_data.get("error", {}).get("message") or f"HTTP {resp.status_code}"
            logger.error(f"Cloudinary upload failed for {image_name}: {message}")
            raise UploadError(f"Cloudinary upload failed for image '{image_name}': {message}")

        secure_url = resp_data.get("secure_url")
        if not secure_url:
            raise UploadError(f"Cloudinary upload returned no URL for image '{image_name}'.")

        logger.info(f"Uploaded image {image_name} to {secure_url}")
        return secure_url


def get_image_store() -> ImageStore:
    return import_string(settings.EXAM_IMAGE_STORE)()
