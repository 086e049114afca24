"""Collecting file locations from directories and image tar archives."""

from __future__ import annotations

import os
import re
import shutil
import tarfile

from diggity.model import Arguments, Location

_GZ_FILE = ".gz"
_INVALID_CHARS = re.compile(r"""[,@<>:'"|?*#%&{}$=!]""")
_LAYER_SHA = re.compile(r"\b[A-Fa-f0-9]{64}\b", re.ASCII)
_SKIPPED_DIRS = frozenset({".git", ".vscode"})
_LAYER_TAR = "layer.tar"
_WINDOWS_INVALID_NAME = 123


def exists(filename: str) -> bool:
    """Tell whether a file or directory exists at the path."""
    try:
        os.stat(filename)
    except (OSError, ValueError):
        return False
    return True


def check_user_input(args: Arguments) -> tuple[str, str]:
    """Work out the kind of scan target from the arguments.

    Returns the source kind ("tar", "dir", "image" or "") and a progress
    message. An image argument that names a tar file or an existing path is
    moved onto the tar or dir argument.
    """
    if args.image is None and not args.dir and args.tar:
        return "tar", "Extracting Image tar File..."
    if args.image is None and args.dir and not args.tar:
        return "dir", "Checking File Directory"
    if args.image is not None and not args.dir and not args.tar:
        if args.image.endswith(".tar"):
            args.tar = args.image
            return "tar", "Extracting Image tar File..."
        if exists(args.image):
            args.dir = args.image
            return "dir", "Checking File Directory"
        return "image", "Checking image from local..."
    return "", ""


def get_files_from_dir(source: str) -> list[Location]:
    """List every path under source in lexical order, skipping .git and .vscode."""
    info = os.lstat(source)
    contents: list[Location] = []
    _walk(source, os.path.isdir(source) and not os.path.islink(source) or _is_dir_mode(info.st_mode), contents)
    return contents


def _is_dir_mode(mode: int) -> bool:
    import stat

    return stat.S_ISDIR(mode)


def _walk(path: str, is_dir: bool, contents: list[Location]) -> None:
    if is_dir and os.path.basename(os.path.normpath(path)) in _SKIPPED_DIRS:
        return
    contents.append(Location(path=path))
    if not is_dir:
        return
    with os.scandir(path) as iterator:
        entries = sorted(iterator, key=lambda entry: entry.name)
    for entry in entries:
        _walk(entry.path, entry.is_dir(follow_symlinks=False), contents)


def untar(dst: str, source: str, recursive: bool) -> list[Location]:
    """Extract the regular files and directories of a tar archive into dst.

    Entries with unsafe names are skipped. When recursive, every extracted
    layer.tar is unpacked in turn next to itself. Returns the locations of
    the extracted files, each with the layer digest found in its path.
    """
    contents: list[Location] = []
    _untar_into(dst, source, recursive, contents)
    return contents


def _untar_into(dst: str, source: str, recursive: bool, contents: list[Location]) -> None:
    with tarfile.open(source, mode="r:") as archive:
        for member in archive:
            target = os.path.normpath(os.path.join(dst, member.name))
            base = os.path.basename(target)
            if _GZ_FILE in base or _INVALID_CHARS.search(base) or ".." in target:
                continue
            if member.isdir():
                if not os.path.exists(target):
                    os.makedirs(target)
            elif member.isreg():
                _process_file(archive, member, target, recursive, contents)


def _layer_hash(path: str) -> str:
    for part in path.split(os.sep):
        match = _LAYER_SHA.search(part)
        if match:
            return match.group()
    return ""


def _process_file(
    archive: tarfile.TarFile,
    member: tarfile.TarInfo,
    target: str,
    recursive: bool,
    contents: list[Location],
) -> None:
    try:
        fd = os.open(target, os.O_CREAT | os.O_RDWR, member.mode)
    except OSError as exc:
        if getattr(exc, "winerror", None) == _WINDOWS_INVALID_NAME:
            return
        raise

    nested_dir = None
    if _LAYER_TAR in target and recursive:
        nested_dir = target.replace(_LAYER_TAR, "")
        try:
            os.mkdir(nested_dir)
        except OSError:
            pass

    with os.fdopen(fd, "wb") as out:
        extracted = archive.extractfile(member)
        if extracted is not None:
            with extracted:
                shutil.copyfileobj(extracted, out)

    contents.append(Location(path=target, layer_hash=_layer_hash(target)))

    if nested_dir is not None:
        try:
            _untar_into(nested_dir, target, True, contents)
        except (OSError, tarfile.TarError):
            pass