__all__ = ["imagestore", "localdisk", "gridfs"]

import os
import re
import time
import random

from .localdisk import LocalDiskIS
from .gridfs import GridFSIS

ALLOWED_IMAGE_TYPES = re.compile(r"jpeg|jpg|png|gif|webp|svg")


class UploadRejected(Exception):
    pass


def parseImageStoreURL(imagestoreurl, database):
    if imagestoreurl.startswith("file://"):
        return LocalDiskIS(imagestoreurl.replace("file://", "", 1) or "uploads")
    elif imagestoreurl.startswith("mongo://"):
        return GridFSIS(database)
    else:
        raise Exception("Cannot initialize image store with unknown scheme " + imagestoreurl)


def make_upload_name(original_name):
    """
    <epoch millis>-<random>-<original name with anything odd replaced by a dash>
    """
    unique_suffix = "%d-%d" % (int(time.time() * 1000), random.randint(0, 10**9))
    return unique_suffix + "-" + re.sub(r"[^a-zA-Z0-9.]", "-", os.path.basename(original_name))


def check_image_upload(filename, mimetype):
    extension = os.path.splitext(filename or "")[1].lower()
    if not (extension and ALLOWED_IMAGE_TYPES.search(extension) and ALLOWED_IMAGE_TYPES.search(mimetype or "")):
        raise UploadRejected("Error: Images only (JPEG, JPG, PNG, GIF, WEBP, SVG)!")


def store_image_upload(imagestore, upload):
    """
    Check and store a werkzeug FileStorage; return the name the image is stored under.
    """
    check_image_upload(upload.filename, upload.mimetype)
    return imagestore.store_file(make_upload_name(upload.filename), upload.mimetype, upload.stream)
