"""
File storage used by the File field

Disks are looked up by name: disks registered with `register_disk` first,
then the disks configured in the DISKS config option, e.g.
    app.config["DISKS"] = {"local": {"root": "storage"}, "public": {"root": "/var/www/uploads"}}
"""
import os
import uuid
from flask import current_app, has_app_context
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename
import restify
from .config import get_config
from .errors import ConfigurationError

_disks = {}


def upload_size(upload: FileStorage) -> int:
    """
    :return: size of the uploaded file in bytes
    """
    stream = upload.stream
    try:
        position = stream.tell()
        stream.seek(0, os.SEEK_END)
        size = stream.tell()
        stream.seek(position)
    except (AttributeError, OSError):  # pragma: no cover
        size = upload.content_length or 0
    return size


def is_valid_upload(upload) -> bool:
    return isinstance(upload, FileStorage) and bool(upload.filename)


class Disk:
    """
    Storage backend interface
    """

    def put(self, upload: FileStorage, directory: str = "", filename: str = None) -> str:
        """
        Save the upload
        :return: the path of the stored file, relative to the disk
        """
        raise NotImplementedError

    def delete(self, path: str) -> bool:
        """
        :return: True if a file was removed
        """
        raise NotImplementedError

    def exists(self, path: str) -> bool:
        raise NotImplementedError


class LocalDisk(Disk):
    """
    Stores the files in a directory of the local filesystem
    """

    def __init__(self, root="storage", **kwargs):
        self._root = root

    @property
    def root(self):
        if os.path.isabs(self._root) or not has_app_context():
            return self._root
        return os.path.join(current_app.root_path, self._root)

    def full_path(self, path):
        return os.path.join(self.root, *path.split("/"))

    def put(self, upload, directory="", filename=None):
        if filename is None:
            _, ext = os.path.splitext(secure_filename(upload.filename or ""))
            filename = f"{uuid.uuid4().hex}{ext.lower()}"
        else:
            filename = secure_filename(filename)
        directory = directory.strip("/")
        path = f"{directory}/{filename}" if directory else filename
        full_path = self.full_path(path)
        os.makedirs(os.path.dirname(full_path), exist_ok=True)
        upload.save(full_path)
        restify.log.debug(f"Stored {upload.filename} as {full_path}")
        return path

    def delete(self, path):
        full_path = self.full_path(path)
        if not os.path.isfile(full_path):
            restify.log.warning(f"Can't delete {full_path}: file doesn't exist")
            return False
        os.remove(full_path)
        restify.log.debug(f"Deleted {full_path}")
        return True

    def exists(self, path):
        return os.path.isfile(self.full_path(path))

    def __repr__(self):
        return f"<LocalDisk {self._root}>"


DRIVERS = {"local": LocalDisk}


def register_disk(name: str, disk: Disk) -> Disk:
    """
    Register a disk instance, it takes precedence over the DISKS configuration
    """
    _disks[name] = disk
    return disk


def unregister_disk(name: str) -> None:
    _disks.pop(name, None)


def get_disk(name: str = None) -> Disk:
    """
    :param name: disk name, defaults to the DEFAULT_DISK config option
    :return: Disk instance
    """
    if isinstance(name, Disk):
        return name
    if name is None:
        name = get_config("DEFAULT_DISK") or "local"
    if name in _disks:
        return _disks[name]
    disk_config = (get_config("DISKS") or {}).get(name)
    if disk_config is None:
        raise ConfigurationError(f'Unknown storage disk "{name}"')
    disk_config = dict(disk_config)
    driver = DRIVERS.get(disk_config.pop("driver", "local"))
    if driver is None:
        raise ConfigurationError(f'Unknown storage driver for disk "{name}"')
    return driver(**disk_config)


def store(upload: FileStorage, directory: str = "", filename: str = None, disk=None) -> str:
    """
    Store the upload on the disk
    :return: path of the stored file
    """
    return get_disk(disk).put(upload, directory, filename)


def delete(path: str, disk=None) -> bool:
    """
    Delete a stored file
    """
    if not path:
        return False
    return get_disk(disk).delete(path)
