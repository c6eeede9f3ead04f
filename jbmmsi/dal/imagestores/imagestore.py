import abc


class ImageStore(abc.ABC):
    @abc.abstractmethod
    def store_file(self, name, mimetype, filecontents):
        """
        Store the contents of the file like filecontents object under the specified name.
        Return the name that the store can later retrieve the file with.
        """
        pass

    @abc.abstractmethod
    def return_file_contents(self, name):
        """
        Return a file like object with the contents of the named file; None if the store does not have it.
        """
        pass

    @abc.abstractmethod
    def delete_file(self, name):
        """
        Remove the named file; removing a file that is not there is not an error.
        """
        pass

    def is_available(self):
        return True
