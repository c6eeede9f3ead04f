from jbmmsi.dal.imagestores.imagestore import ImageStore
import os
import shutil
import logging

from werkzeug.security import safe_join

logger = logging.getLogger(__name__)


class LocalDiskIS(ImageStore):
    """
    Uploads live as plain files in a folder on the web server.
    """
    def __init__(self, folder):
        self.folder = folder
        if not os.path.exists(self.folder):
            os.makedirs(self.folder, exist_ok=True)
            logger.info("Uploads directory %s created", self.folder)

    def __path_for__(self, name):
        path = safe_join(self.folder, name)
        if not path:
            raise ValueError("Invalid upload name %s" % name)
        return path

    def store_file(self, name, mimetype, filecontents):
        path = self.__path_for__(name)
        with open(path, "wb") as f:
            shutil.copyfileobj(filecontents, f)
        logger.info("Stored upload %s (%s) in %s", name, mimetype, self.folder)
        return name

    def return_file_contents(self, name):
        try:
            path = self.__path_for__(name)
        except ValueError:
            return None
        if not os.path.isfile(path):
            return None
        return open(path, "rb")

    def delete_file(self, name):
        try:
            path = self.__path_for__(name)
        except ValueError:
            return
        if os.path.isfile(path):
            os.remove(path)
            logger.info("Removed upload %s", name)

    def is_available(self):
        return os.path.isdir(self.folder)
