from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class TransformKind(str, Enum):
    """Decode event recorded for one leaf."""

    JSON = "JSON"
    BASE64 = "Base64"
    EPOCH = "Epoch"
    BASE64_JSON = "Base64->JSON"
    BASE64_EPOCH = "Base64->Epoch"


@dataclass(frozen=True)
class TransformationRecord:
    """One substitution in the output tree.

    ``path`` addresses the substituted node in the pre-normalization tree;
    ``original_value`` is the exact string that was replaced.
    """

    path: str
    kind: TransformKind
    original_value: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "kind": self.kind.value,
            "originalValue": self.original_value,
        }


class OriginalValueIndex:
    """Maps substituted composites back to the encoded text they replaced.

    Each composite substitution gets a synthetic id. Lookups go through the
    path annotation or through the identity of the produced value; identity
    lookups are valid only while the owning result holds the tree.
    """

    def __init__(self) -> None:
        self._originals: Dict[int, str] = {}
        self._paths: Dict[str, int] = {}
        self._identities: Dict[int, int] = {}
        self._produced: List[Any] = []

    def register(self, path: str, produced: Any, original: str) -> int:
        node_id = len(self._originals) + 1
        self._originals[node_id] = original
        # Outermost substitution at a path is registered last and wins.
        self._paths[path] = node_id
        self._identities[id(produced)] = node_id
        # Pin the produced value so id() stays unique for the index lifetime.
        self._produced.append(produced)
        return node_id

    def original_at(self, path: str) -> Optional[str]:
        node_id = self._paths.get(path)
        return self._originals.get(node_id) if node_id is not None else None

    def original_of(self, value: Any) -> Optional[str]:
        node_id = self._identities.get(id(value))
        return self._originals.get(node_id) if node_id is not None else None

    def node_id_at(self, path: str) -> Optional[int]:
        return self._paths.get(path)

    def annotations(self) -> Dict[str, str]:
        """Path -> original text for every indexed composite."""

        return {p: self._originals[i] for p, i in self._paths.items()}

    def __len__(self) -> int:
        return len(self._originals)


@dataclass(frozen=True)
class NormalizationResult:
    """Output of one normalize run: unwrapped tree, provenance log and index."""

    tree: Any
    log: Tuple[TransformationRecord, ...]
    index: OriginalValueIndex

    def original_of(self, value: Any) -> Optional[str]:
        return self.index.original_of(value)

    def original_at(self, path: str) -> Optional[str]:
        return self.index.original_at(path)

    @property
    def transformed_paths(self) -> Tuple[str, ...]:
        return tuple(r.path for r in self.log)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tree": self.tree,
            "transformations": [r.to_dict() for r in self.log],
            "originals": self.index.annotations(),
        }
