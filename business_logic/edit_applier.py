"""
Field-level edits of a media plan.

An edit names a section, a field path inside it and a new value. Paths are
dot-separated with optional array indexes, for example ``cacModel.targetCPL``,
``platformBreakdown[0].monthlyBudget`` or ``[1].budgetPercentage`` for the
array sections. The path is parsed once into Key/Index segments and applied
copy-on-write: only the objects along the path are copied, every other part
of the plan is shared with the previous snapshot.
"""

import json
import logging
import re
from dataclasses import dataclass, fields, is_dataclass, replace
from typing import Any, List, Optional, Tuple, Union, get_args, get_origin, get_type_hints

from models.data_models import MediaPlan, PlanSection, convert_value, field_key, is_number, to_plain

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

_PART = re.compile(r'^([^\[\]]*)((?:\[\d+\])*)$')
_INDEX = re.compile(r'\[(\d+)\]')


class EditError(Exception):
    """Base class for edits that cannot be applied."""


class FieldPathError(EditError, ValueError):
    """Raised for malformed field paths."""


class EditRejectedError(EditError):
    """Raised when an edit is well-formed but would corrupt the plan."""

    def __init__(self, message: str, guidance: Optional[str] = None):
        super().__init__(message)
        self.guidance = guidance or message


@dataclass(frozen=True)
class Key:
    name: str

    def __str__(self):
        return self.name


@dataclass(frozen=True)
class Index:
    position: int

    def __str__(self):
        return f'[{self.position}]'


PathSegment = Union[Key, Index]


@dataclass(frozen=True)
class FieldPath:
    """A parsed field path."""
    segments: Tuple[PathSegment, ...]

    @classmethod
    def parse(cls, path: str) -> 'FieldPath':
        """
        Parse a dot/array-index path.

        Args:
            path: Path such as "platformBreakdown[0].monthlyBudget"

        Returns:
            FieldPath with Key and Index segments

        Raises:
            FieldPathError: If the path is empty or malformed
        """
        if not isinstance(path, str) or not path.strip():
            raise FieldPathError("Field path must be a non-empty string")

        segments: List[PathSegment] = []
        for part in path.strip().split('.'):
            match = _PART.match(part)
            if not match or (not match.group(1) and not match.group(2)):
                raise FieldPathError(f'Malformed field path "{path}" at "{part}"')

            name = match.group(1)
            if name:
                segments.append(Index(int(name)) if name.isdigit() else Key(name))
            for index in _INDEX.findall(match.group(2)):
                segments.append(Index(int(index)))

        return cls(tuple(segments))

    def __str__(self):
        text = ''
        for segment in self.segments:
            if isinstance(segment, Key) and text:
                text += '.'
            text += str(segment)
        return text


def _strip_optional(annotation: Any) -> Any:
    if get_origin(annotation) is Union:
        candidates = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(candidates) == 1:
            return candidates[0]
    return annotation


def _item_annotation(annotation: Any) -> Any:
    args = get_args(_strip_optional(annotation))
    return args[0] if args else Any


def _describe(value: Any) -> str:
    if isinstance(value, list):
        return f"an array with {len(value)} items"
    if is_number(value):
        return "a number"
    if isinstance(value, str):
        return "a string"
    if isinstance(value, bool):
        return "a boolean"
    return "an object"


def format_preview_value(value: Any) -> str:
    """Format a value for a diff preview line."""
    if isinstance(value, str):
        return f'"{value[:97]}..."' if len(value) > 100 else f'"{value}"'
    if isinstance(value, list):
        if not value:
            return '[]'
        if isinstance(value[0], str):
            return '[' + ', '.join(f'"{item}"' for item in value) + ']'
        return f'[{len(value)} items]'
    if isinstance(value, dict):
        return json.dumps(value, indent=2)
    if isinstance(value, bool) or value is None:
        return json.dumps(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def generate_diff_preview(old_value: Any, new_value: Any) -> str:
    """Human-readable two-line diff of an edit."""
    old_value, new_value = to_plain(old_value), to_plain(new_value)
    return f"- Old: {format_preview_value(old_value)}\n+ New: {format_preview_value(new_value)}"


class EditApplier:
    """
    Applies single field edits to media plan snapshots.

    The input plan is never modified; a new MediaPlan is returned.
    """

    def apply(self,
              media_plan: MediaPlan,
              section: Union[str, PlanSection],
              field_path: str,
              new_value: Any) -> Tuple[MediaPlan, Any]:
        """
        Apply one edit.

        Args:
            media_plan: Current plan snapshot
            section: Section key, e.g. "budgetAllocation"
            field_path: Path inside the section
            new_value: Plain JSON value to store

        Returns:
            Tuple of (new plan snapshot, previous value as plain JSON)

        Raises:
            FieldPathError: If the path is malformed
            EditRejectedError: If the edit would change a value's type or the target does not exist
        """
        plan_section = self._resolve_section(section)
        path = FieldPath.parse(field_path)

        section_value = media_plan.get_section(plan_section)
        if section_value is None:
            raise EditRejectedError(
                f'Section "{plan_section.value}" not found in media plan',
                guidance=f'Generate or restore the "{plan_section.value}" section before editing it.'
            )

        annotation = get_type_hints(MediaPlan)[plan_section.attribute]
        new_section, old_value = self._set(section_value, annotation, path.segments, new_value, str(path))

        logger.info(f"Applied edit to {plan_section.value}.{path}")
        return media_plan.with_sections({plan_section: new_section}), to_plain(old_value)

    def get_value(self, media_plan: MediaPlan, section: Union[str, PlanSection], field_path: str) -> Any:
        """
        Read the value at a path as plain JSON.

        Returns:
            The value, or None when the section or path does not exist
        """
        plan_section = self._resolve_section(section)
        current = media_plan.get_section(plan_section)

        for segment in FieldPath.parse(field_path).segments:
            if current is None:
                return None
            if isinstance(segment, Index):
                if not isinstance(current, list) or segment.position >= len(current):
                    return None
                current = current[segment.position]
            elif is_dataclass(current):
                attribute = self._find_field(current, segment.name)
                if attribute is not None:
                    current = getattr(current, attribute)
                else:
                    current = getattr(current, 'extra', {}).get(segment.name)
            elif isinstance(current, dict):
                current = current.get(segment.name)
            else:
                return None

        return to_plain(current)

    def _resolve_section(self, section: Union[str, PlanSection]) -> PlanSection:
        try:
            return PlanSection(section)
        except ValueError:
            valid = ', '.join(s.value for s in PlanSection)
            raise EditRejectedError(
                f'Unknown media plan section "{section}"',
                guidance=f"Use one of: {valid}."
            ) from None

    def _find_field(self, node: Any, name: str) -> Optional[str]:
        for dataclass_field in fields(node):
            if dataclass_field.name == 'extra':
                continue
            if field_key(dataclass_field) == name or dataclass_field.name == name:
                return dataclass_field.name
        return None

    def _set(self, node: Any, annotation: Any, segments: Tuple[PathSegment, ...], new_value: Any, path: str):
        """Return (copy of node with the value at segments replaced, old value)."""
        segment, rest = segments[0], segments[1:]

        if isinstance(segment, Index):
            if not isinstance(node, list):
                raise EditRejectedError(
                    f'Cannot index into "{path}": {segment} applied to {_describe(to_plain(node))}',
                    guidance=f'Remove the index {segment} from "{path}".'
                )
            if segment.position >= len(node):
                raise EditRejectedError(
                    f'Index {segment.position} is out of range in "{path}" ({len(node)} items)',
                    guidance=f"Use an index between 0 and {len(node) - 1}." if node else "The array is empty."
                )
            child_annotation = _item_annotation(annotation)
            old = node[segment.position]
            new_child, old_value = self._descend(old, child_annotation, rest, new_value, path)
            copied = list(node)
            copied[segment.position] = new_child
            return copied, old_value

        if is_dataclass(node):
            attribute = self._find_field(node, segment.name)
            if attribute is not None:
                child_annotation = get_type_hints(type(node))[attribute]
                new_child, old_value = self._descend(getattr(node, attribute), child_annotation, rest, new_value, path)
                return replace(node, **{attribute: new_child}), old_value

            if not hasattr(node, 'extra') or (rest and segment.name not in node.extra):
                raise EditRejectedError(
                    f'Field "{segment.name}" not found in "{path}"',
                    guidance="Check the field name; paths use the plan's camelCase keys."
                )
            new_child, old_value = self._descend(node.extra.get(segment.name), Any, rest, new_value, path)
            extra = dict(node.extra)
            extra[segment.name] = new_child
            return replace(node, extra=extra), old_value

        if isinstance(node, dict):
            if rest and segment.name not in node:
                raise EditRejectedError(
                    f'Field "{segment.name}" not found in "{path}"',
                    guidance="Only the last segment of a path may introduce a new key."
                )
            new_child, old_value = self._descend(node.get(segment.name), Any, rest, new_value, path)
            copied = dict(node)
            copied[segment.name] = new_child
            return copied, old_value

        raise EditRejectedError(
            f'Cannot read "{segment.name}" in "{path}": parent is {_describe(to_plain(node))}',
            guidance=f'Edit "{path}" up to the last object in the path.'
        )

    def _descend(self, child: Any, annotation: Any, rest: Tuple[PathSegment, ...], new_value: Any, path: str):
        if rest:
            if child is None:
                raise EditRejectedError(
                    f'Cannot traverse "{path}": an intermediate value is missing',
                    guidance="Set the parent object first."
                )
            return self._set(child, annotation, rest, new_value, path)
        return self._convert_leaf(child, annotation, new_value, path), child

    def _convert_leaf(self, old: Any, annotation: Any, new_value: Any, path: str) -> Any:
        """Check a replacement value against the value it replaces."""
        old_plain = to_plain(old)
        new_plain = to_plain(new_value)

        if isinstance(old_plain, list) and not isinstance(new_plain, list):
            raise EditRejectedError(
                f'Type mismatch: "{path}" is an array with {len(old_plain)} items.',
                guidance=(
                    f'Use an array index (e.g., "{path}[0]") to edit a specific item, '
                    f'or pass an array as the new value.'
                )
            )
        if is_number(old_plain) and not is_number(new_plain):
            raise EditRejectedError(
                f'Type mismatch: "{path}" is a number but the new value is {_describe(new_plain)}.',
                guidance="Pass a plain number without currency symbols or units."
            )
        if isinstance(old_plain, str) and not isinstance(new_plain, str):
            raise EditRejectedError(
                f'Type mismatch: "{path}" is a string but the new value is {_describe(new_plain)}.',
                guidance="Pass the new text as a string."
            )
        if isinstance(old_plain, dict) and not isinstance(new_plain, dict):
            raise EditRejectedError(
                f'Type mismatch: "{path}" is an object but the new value is {_describe(new_plain)}.',
                guidance=f'Edit a single field inside "{path}" or pass a complete object.'
            )

        try:
            return convert_value(annotation, new_plain)
        except TypeError as e:
            raise EditRejectedError(
                f'Invalid value for "{path}": {str(e)}',
                guidance="Match the data type of the existing value."
            ) from e


def get_value_at_path(media_plan: MediaPlan, section: Union[str, PlanSection], field_path: str) -> Any:
    """Read a value from a plan without modifying it."""
    return EditApplier().get_value(media_plan, section, field_path)
