from jbmmsi.dal.imagestores.imagestore import ImageStore
import logging

from gridfs import GridFS
from gridfs.errors import NoFile

logger = logging.getLogger(__name__)


class GridFSIS(ImageStore):
    """
    Uploads stored in GridFS in the site database; useful when the web servers do not share a disk.
    """
    def __init__(self, database):
        self.fs = GridFS(database, collection="uploads")

    def store_file(self, name, mimetype, filecontents):
        fid = self.fs.put(filecontents, filename=name, content_type=mimetype)
        logger.info("Stored upload %s in GridFS as %s", name, fid)
        return name

    def return_file_contents(self, name):
        try:
            return self.fs.get_last_version(filename=name)
        except NoFile:
            return None

    def delete_file(self, name):
        for gfile in self.fs.find({"filename": name}):
            self.fs.delete(gfile._id)
