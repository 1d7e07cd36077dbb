"""
Django-Pageable Property Paths

Resolves dotted property paths (``author.name``, ``tags.name``) against
the field registry and enforces the navigation depth policy.

Policy:
- Paths of up to MAX_PATH_DEPTH segments are always allowed.
- Longer paths are allowed only when an intermediate segment is a
  collection; the segment after the collection (the "clean path") is then
  applied to each element of the collection.
- Only one level past a collection is supported.
"""

import dataclasses

from django_pageable.conf import pageable_settings
from django_pageable.exceptions import FilterFormatError, PathTooDeep, PropertyNotFound
from django_pageable.fields import field_registry


@dataclasses.dataclass(frozen=True)
class ResolvedPath:
    """
    Result of resolving a property path.

    Attributes:
        path: The path as written by the caller
        chain: FieldMeta for every traversed segment, up to and including
               the stopping point
        clean_path: Final segment of the path; when traversal stopped at a
                    collection it names the field inside each element
        residual: Segment left over after a collection, or None when the
                  path ends on the collection itself
    """

    path: str
    chain: tuple
    clean_path: str
    residual: str = None

    @property
    def leaf(self):
        return self.chain[-1]

    @property
    def is_collection(self):
        return self.leaf.is_collection

    @property
    def field(self):
        """Canonical field names of the chain, e.g. ``('author', 'name')``."""
        return tuple(meta.name for meta in self.chain)

    @property
    def dotted(self):
        return ".".join(self.field)


def split_path(path):
    """
    Split a dotted path into trimmed, non-empty segments.

    Examples:
        >>> split_path("author.name")
        ['author', 'name']
        >>> split_path(" tags . name ")
        ['tags', 'name']
    """
    segments = [segment.strip() for segment in (path or "").split(".")]
    segments = [segment for segment in segments if segment]
    if not segments:
        raise FilterFormatError(f"Invalid property path '{path}'", property=path)
    return segments


def _check_depth(model, path, segments, registry):
    """Require a collection among the intermediate segments of a long path."""
    max_depth = pageable_settings.MAX_PATH_DEPTH
    if len(segments) <= max_depth:
        return

    current = model
    for segment in segments[:-1]:
        meta = registry.lookup(current, segment, path)
        if meta.is_collection:
            return
        if meta.target is None:
            break
        current = meta.target

    raise PathTooDeep(
        f"Property path '{path}' exceeds maximum depth of {max_depth} levels. "
        f"Example: 'address.city' is valid, but 'address.city.country' is not.",
        property=path,
    )


def resolve_path(model, path, registry=None):
    """
    Resolve a dotted path against a record type.

    Traversal stops at the first collection-valued field. The remaining
    segment, if any, is returned as the clean path for the caller to apply
    against each element.

    Args:
        model: Root record type (Django model or annotated class)
        path: Dotted path, matched case-insensitively
        registry: FieldRegistry (defaults to the shared registry)

    Returns:
        ResolvedPath

    Raises:
        PropertyNotFound: Unknown segment, or traversal past a scalar field
        PathTooDeep: Path longer than the policy allows

    Examples:
        >>> resolve_path(Article, "Author.Name").field
        ('author', 'name')
        >>> resolved = resolve_path(Article, "tags.name")
        >>> resolved.field, resolved.clean_path
        (('tags',), 'name')
    """
    registry = registry or field_registry
    segments = split_path(path)

    _check_depth(model, path, segments, registry)

    chain = []
    current = model
    for index, segment in enumerate(segments):
        if current is None:
            raise PropertyNotFound(
                f"Cannot find property '{segment}' for path '{path}': '{chain[-1].name}' has no fields",
                property=path,
            )

        meta = registry.lookup(current, segment, path)
        chain.append(meta)

        if meta.is_collection:
            remaining = segments[index + 1 :]
            if len(remaining) > 1:
                raise PathTooDeep(
                    f"Property path '{path}' goes more than one level past collection '{meta.name}'.",
                    property=path,
                )
            break

        current = meta.target

    residual = segments[len(chain)] if len(chain) < len(segments) else None
    return ResolvedPath(path=path, chain=tuple(chain), clean_path=segments[-1], residual=residual)


def resolve_element(resolved, registry=None):
    """
    Resolve the per-element field of a path that stopped at a collection.

    For a collection of primitives the element itself is the field and the
    returned path is empty. For a collection of records the clean path is
    looked up on the element type.

    Returns:
        Tuple of (element FieldMeta, field names relative to the element)

    Raises:
        PropertyNotFound: Element type has no field named by the clean path
    """
    registry = registry or field_registry
    collection = resolved.leaf

    if collection.target is None:
        if resolved.residual is not None:
            raise PropertyNotFound(
                f"Cannot find property '{resolved.residual}' on elements of '{collection.name}' for path '{resolved.path}'",
                property=resolved.path,
            )
        return collection.element_field(), ()

    meta = registry.lookup(collection.target, resolved.clean_path, resolved.path)
    return meta, (meta.name,)
