"""
The tag hierarchy: every constructor tag and its single parent.

Tags live in an arena owned by a TagRegistry and are identified by a stable
integer id. Each tag caches its ancestor chain when it is defined, so ancestry
and distance queries never walk parent links at match time.
"""
from typing import Dict, Iterator, List, Optional, Tuple

from casper.casper_errors import DuplicateTagError, UnknownParentTag, UnknownTagError, RegistryFrozenError

ANY = "Any"
PRIMITIVE_TAGS = ("Int", "Float", "String", "List", "Dict")


class Tag:
    """A node in the tag forest. Create tags through TagRegistry.define."""
    def __init__(self, name: str, index: int, parent_index: Optional[int], chain: Tuple[int, ...]):
        self.name = name
        self.index = index
        self.parent_index = parent_index
        # Ids from this tag up to Any, inclusive on both ends.
        self.chain = chain
        self._positions: Dict[int, int] = {tag_id: pos for pos, tag_id in enumerate(chain)}

    @property
    def is_root(self) -> bool:
        return self.parent_index is None

    def __repr__(self) -> str:
        return f"Tag<{self.name}>"

    def __hash__(self):
        return hash((self.name, self.index))

    def __eq__(self, other):
        if not isinstance(other, Tag):
            return NotImplemented
        return self.index == other.index and self.name == other.name


class TagRegistry:
    """Append-only store of tags, frozen once the load phase is over.

    A fresh registry already holds `Any` and the primitive tags, each a
    direct child of `Any`.
    """
    def __init__(self):
        self._tags: List[Tag] = []
        self._by_name: Dict[str, Tag] = {}
        self._frozen = False
        root = self._add(ANY, None)
        for name in PRIMITIVE_TAGS:
            self._add(name, root)

    def _add(self, name: str, parent: Optional[Tag]) -> Tag:
        index = len(self._tags)
        chain = (index,) + (parent.chain if parent is not None else ())
        tag = Tag(name, index, parent.index if parent is not None else None, chain)
        self._tags.append(tag)
        self._by_name[name] = tag
        return tag

    # -- load phase ---------------------------------------------------

    def define(self, name: str, parent: Tag) -> Tag:
        """Register `name` as a child of `parent` and return the new tag."""
        if self._frozen:
            raise RegistryFrozenError(f"cannot define tag '{name}': the registry is frozen")
        if name in self._by_name:
            raise DuplicateTagError(name)
        if self._owned(parent) is None:
            raise UnknownParentTag(name, getattr(parent, "name", repr(parent)))
        return self._add(name, parent)

    def declare(self, name: str, parent_name: str) -> Tag:
        """Like define, but the parent is given by name as a declaration would."""
        if self._frozen:
            raise RegistryFrozenError(f"cannot define tag '{name}': the registry is frozen")
        parent = self._by_name.get(parent_name)
        if parent is None:
            raise UnknownParentTag(name, parent_name)
        return self.define(name, parent)

    def checkpoint(self) -> int:
        return len(self._tags)

    def rollback(self, mark: int):
        """Forget every tag defined since `checkpoint` returned `mark`."""
        for tag in self._tags[mark:]:
            del self._by_name[tag.name]
        del self._tags[mark:]

    def freeze(self):
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    # -- queries ------------------------------------------------------

    @property
    def root(self) -> Tag:
        return self._tags[0]

    def lookup(self, name: str) -> Tag:
        tag = self._by_name.get(name)
        if tag is None:
            raise UnknownTagError(name)
        return tag

    def get(self, name: str, default: Optional[Tag] = None) -> Optional[Tag]:
        return self._by_name.get(name, default)

    def __contains__(self, name) -> bool:
        if isinstance(name, Tag):
            return self._owned(name) is not None
        return name in self._by_name

    def __iter__(self) -> Iterator[Tag]:
        return iter(self._tags)

    def __len__(self) -> int:
        return len(self._tags)

    def parent(self, tag: Tag) -> Optional[Tag]:
        tag = self._require(tag)
        return None if tag.parent_index is None else self._tags[tag.parent_index]

    def ancestor_chain(self, tag: Tag) -> Tuple[Tag, ...]:
        """Tags from `tag` itself up to and including `Any`."""
        tag = self._require(tag)
        return tuple(self._tags[i] for i in tag.chain)

    def distance(self, from_tag: Tag, to_tag: Tag) -> Optional[int]:
        """Position of `to_tag` in the ancestor chain of `from_tag`, or None."""
        from_tag = self._require(from_tag)
        to_tag = self._require(to_tag)
        return from_tag._positions.get(to_tag.index)

    def is_a(self, tag: Tag, ancestor: Tag) -> bool:
        return self.distance(tag, ancestor) is not None

    def _owned(self, tag) -> Optional[Tag]:
        if not isinstance(tag, Tag):
            return None
        if 0 <= tag.index < len(self._tags) and self._tags[tag.index] is tag:
            return tag
        return None

    def _require(self, tag: Tag) -> Tag:
        owned = self._owned(tag)
        if owned is None:
            raise UnknownTagError(getattr(tag, "name", repr(tag)))
        return owned

    def __repr__(self) -> str:
        state = " frozen" if self._frozen else ""
        return f"<TagRegistry tags={len(self._tags)}{state}>"
