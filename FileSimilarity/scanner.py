import logging
import os
import re
from typing import Iterable, List

from opentelemetry import trace

from .errors import InputError
from .preprocessing.document import FileEntry

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def compile_pattern(pattern: str) -> "re.Pattern":
    try:
        return re.compile(pattern)
    except re.error as e:
        raise InputError(f"Invalid file name pattern {pattern!r}: {e}") from e


def read_contents(path: str) -> str:
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            return f.read()
    except OSError as e:
        raise InputError(f"Could not read {path}: {e}") from e


def make_entry(path: str, contents: bool = False) -> FileEntry:
    """
    Build an entry for one file on disk.

    The entry is labelled with its path; its terms come from the base name,
    or from the file text when ``contents`` is set.
    """
    try:
        size = os.path.getsize(path)
    except OSError as e:
        raise InputError(f"Could not stat {path}: {e}") from e

    text = read_contents(path) if contents else os.path.basename(path)
    return FileEntry(path, text=text, size=size, path=path)


def scan_dir(root: str, pattern: str = ".*", contents: bool = False) -> List[FileEntry]:
    """
    Recursively collect the files below a directory.

    Args:
        root: Directory to walk
        pattern: Regex the base name must match (``re.search``)
        contents: Read file contents as the text to compare

    Returns:
        FileEntry list in sorted path order

    Raises:
        InputError: if the directory, or any directory below it, cannot be read
    """
    filename_regex = compile_pattern(pattern)

    def on_error(error):
        raise InputError(f"Could not read directory {error.filename}: {error.strerror}")

    with tracer.start_as_current_span("scan_dir") as span:
        span.set_attribute("scan.root", root)
        logger.info("Getting file listing from: %s", root)

        entries = []
        for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
            dirnames.sort()
            for filename in sorted(filenames):
                path = os.path.join(dirpath, filename)
                logger.debug("found %s", path)
                if not os.path.isfile(path) or not filename_regex.search(filename):
                    continue
                entries.append(make_entry(path, contents))

        span.set_attribute("scan.files", len(entries))
        logger.info("Found %d matching files in %s", len(entries), root)
        return entries


def scan_paths(paths: Iterable[str], pattern: str = ".*", contents: bool = False) -> List[FileEntry]:
    """
    Collect entries from a mix of directories and individual files.

    Raises:
        InputError: for a path that does not exist or cannot be read
    """
    filename_regex = compile_pattern(pattern)
    entries = []

    for path in paths:
        if os.path.isdir(path):
            entries.extend(scan_dir(path, pattern, contents))
        elif os.path.isfile(path):
            if filename_regex.search(os.path.basename(path)):
                entries.append(make_entry(path, contents))
        else:
            raise InputError(f"No such file or directory: {path}")

    return entries
