"""Placeholder substitution for upload paths and file names.

Two kinds of tokens are understood:

* ``[[model]]`` and ``[[attribute]]`` in directory templates, replaced with
  the model class name and the upload attribute (first letter lower-cased).
* ``{column}`` in file name templates, replaced with the slugified value of
  that column on the record.
"""
import posixpath
import re
from pathlib import Path
from typing import Any, Mapping, Tuple

_NON_SLUG = re.compile(r'[^a-zA-Z0-9\-]+')
_FIELD_TOKEN = re.compile(r'\{([^{}]+)\}')
_SEPARATORS = re.compile(r'[/\\]+')


def lcfirst(value: str) -> str:
    return value[:1].lower() + value[1:]


def split_extension(name: str) -> Tuple[str, str]:
    """
    Split the last path component into (base name, extension).
    
    The extension is whatever follows the last dot, so ``.htaccess`` has
    extension ``htaccess`` and ``a.tar.`` has none.
    """
    name = _SEPARATORS.sub('/', name or "").rsplit('/', 1)[-1]
    if '.' not in name:
        return name, ""
    base, extension = name.rsplit('.', 1)
    return base, extension


def slugify(value: Any) -> str:
    """
    Turn a column value into a file-name-safe fragment.
    
    Runs of characters outside ``[a-zA-Z0-9-]`` become a single dash, the
    result is lower-cased and stripped of leading/trailing dashes.
    """
    if value is None:
        return ""
    return _NON_SLUG.sub('-', str(value)).lower().strip('-')


def resolve_file_name(template: str, values: Mapping[str, Any]) -> str:
    """
    Replace ``{key}`` tokens with slugified values.
    
    Tokens without a matching key are left untouched, and substituted text is
    never scanned again.
    
    Args:
        template: File name template, e.g. ``"{id}-{title}"``
        values: Column values of the record
        
    Returns:
        File name without extension
    """
    def replace(match: re.Match) -> str:
        key = match.group(1)
        if key in values:
            return slugify(values[key])
        return match.group(0)
    
    return _FIELD_TOKEN.sub(replace, template)


def resolve_directory(template: str, model_name: str, attribute: str) -> str:
    """Replace ``[[model]]`` and ``[[attribute]]`` in a directory template."""
    path = template.replace('[[model]]', lcfirst(model_name))
    return path.replace('[[attribute]]', lcfirst(attribute))


def normalize_path(path: str) -> str:
    """Collapse separators and resolve ``.``/``..`` segments (POSIX style)."""
    path = _SEPARATORS.sub('/', path)
    if not path:
        return path
    return posixpath.normpath(path)


def resolve_path(
    path_template: str,
    name_template: str,
    model_name: str,
    attribute: str,
    values: Mapping[str, Any],
    stored_name: str
) -> str:
    """
    Compute the stored path of an upload.
    
    The extension is taken from ``stored_name`` (the attribute value) and
    lower-cased; a value without an extension yields a path without one.
    
    Args:
        path_template: Directory template
        name_template: File name template
        model_name: Model class name
        attribute: Upload attribute name
        values: Column values of the record
        stored_name: Current attribute value
        
    Returns:
        Normalized path, relative to the web root
    """
    directory = resolve_directory(path_template, model_name, attribute)
    file_name = resolve_file_name(name_template, values)
    
    extension = split_extension(stored_name)[1].lower()
    if extension:
        file_name = f"{file_name}.{extension}"
    return normalize_path(f"{directory}/{file_name}")


def thumb_path(path: str, profile: str) -> str:
    """Insert ``profile`` as a directory before the last path component."""
    head, sep, tail = path.rpartition('/')
    if not sep:
        return f"{profile}/{path}"
    return f"{head}/{profile}/{tail}"


def absolute_path(web_root: Path, stored: str) -> Path:
    """Join a stored (possibly leading-slash) path onto the web root."""
    return Path(web_root) / normalize_path(stored).lstrip('/')
