"""
File field: stores an uploaded file on a storage disk and keeps its path in the model attribute

    File("image").disk("public").path("posts").store_original_name("image_original_name").store_size("image_size")
"""
import restify
from . import storage
from .config import get_config
from .db import is_fillable
from .fields import Field, Deletable
from .storage import is_valid_upload, upload_size
from .tx import after_commit


class File(Deletable, Field):
    """
    File upload field
    """

    def __init__(self, attribute, resolve_callback=None):
        super().__init__(attribute, resolve_callback)
        self._disk = None
        self._storage_path = ""
        self._store_as = None
        self.original_name_column = None
        self.size_column = None
        self._prunable = False
        # the upload found by the last fill_attribute call
        self.upload = None
        self.storage_callback = self.default_storage_callback

    #
    # Configuration
    #
    def disk(self, name):
        self._disk = name
        return self

    def path(self, directory):
        self._storage_path = directory
        return self

    def store_as(self, name):
        """
        :param name: file name, or `cb(request)` returning the file name
        """
        self._store_as = name
        return self

    def store_original_name(self, column):
        self.original_name_column = column
        return self

    def store_size(self, column):
        self.size_column = column
        return self

    def store(self, callback):
        """
        Custom storage, `cb(request, model, attribute, disk, path)` returns:
        - True: the callback handled everything
        - a callable: called after all fields were filled
        - a string: the stored path, assigned to the attribute
        - a dict: attribute values, assigned to the fillable model attributes
        """
        self.storage_callback = callback
        return self

    def prunable(self, flag=True):
        """
        Delete the previous file when it's replaced
        """
        self._prunable = flag
        return self

    def types(self, *extensions):
        self._rules.append("mimes:" + ",".join(ext.lstrip(".") for ext in extensions))
        return self

    def get_storage_disk(self):
        return self._disk or get_config("DEFAULT_DISK") or "local"

    def get_storage_dir(self):
        return self._storage_path

    def is_prunable(self):
        return bool(self._prunable)

    #
    # Storage
    #
    def get_upload(self, request, payload=None):
        if payload is not None and self.attribute in payload:
            upload = payload[self.attribute]
        else:
            upload = request.files.get(self.attribute)
        return upload if is_valid_upload(upload) else None

    def store_file(self, request, upload):
        filename = self._store_as
        if callable(filename):
            filename = filename(request)
        return storage.store(upload, self.get_storage_dir(), filename=filename, disk=self.get_storage_disk())

    def default_storage_callback(self, request, model, attribute, disk, path):
        upload = self.upload if self.upload is not None else self.get_upload(request)
        result = {attribute: self.store_file(request, upload)}
        if self.original_name_column:
            result[self.original_name_column] = upload.filename
        if self.size_column:
            result[self.size_column] = upload_size(upload)
        return result

    def fill_attribute(self, request, model, payload=None):
        if self._fill_callback is not None:
            return self._fill_callback(request, model, self.attribute)
        self.upload = self.get_upload(request, payload)
        if self.upload is None:
            return None

        previous_path = getattr(model, self.attribute, None)
        result = self.storage_callback(request, model, self.attribute, self.get_storage_disk(), self.get_storage_dir())
        if result is True:
            return None
        if callable(result):
            return result
        if isinstance(result, str):
            setattr(model, self.attribute, result)
        elif isinstance(result, dict):
            for key, value in result.items():
                if is_fillable(model, key):
                    setattr(model, key, value)
                else:
                    restify.log.debug(f"Not filling {key}: attribute is not fillable")
        else:
            return None

        if self.is_prunable() and previous_path and previous_path != getattr(model, self.attribute, None):
            disk = self.get_storage_disk()
            return lambda: after_commit(lambda: storage.delete(previous_path, disk))
        return None

    #
    # Deletion
    #
    def columns_to_delete(self):
        result = {self.attribute: None}
        if self.original_name_column:
            result[self.original_name_column] = None
        if self.size_column:
            result[self.size_column] = None
        return result

    def delete_stored(self, request, model):
        """
        Remove the stored file
        :return: the attribute values to assign to the model
        """
        if self._delete_callback is not None:
            return self._delete_callback(request, model)
        # the stored path, not the value transformed by resolve_using
        path = getattr(model, self.attribute, None)
        if not path:
            return {}
        storage.delete(path, self.get_storage_disk())
        return self.columns_to_delete()
