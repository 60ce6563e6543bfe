# skill_engine/labels.py

import re
from typing import Dict, Iterable, List, Optional

from .models import NodeType, SkillNode

_TYPE_TOKENS = "|".join(t.value for t in NodeType)

# Trailing "(skill)", " (Cert) " and the like.
TYPE_SUFFIX_RE = re.compile(r"\s*\((?:%s)\)\s*$" % _TYPE_TOKENS, re.IGNORECASE)


def strip_type_suffix(label: str) -> str:
    return TYPE_SUFFIX_RE.sub("", label, count=1).strip()


class LabelIndex:
    """
    Maps node labels to nodes for the duration of one operation.

    Lookups are exact. The only leniency is a single trailing type suffix
    on the candidate, which the oracle likes to add.
    """

    def __init__(self, nodes: Iterable[SkillNode] = ()):
        self._by_label: Dict[str, SkillNode] = {}
        for node in nodes:
            self.add(node)

    def add(self, node: SkillNode) -> None:
        # First occurrence of a label wins.
        self._by_label.setdefault(node.label, node)

    def resolve(self, candidate: Optional[str]) -> Optional[SkillNode]:
        if not candidate:
            return None
        node = self._by_label.get(candidate)
        if node is not None:
            return node
        stripped = strip_type_suffix(candidate)
        if stripped == candidate:
            return None
        return self._by_label.get(stripped)

    def labels(self) -> List[str]:
        return list(self._by_label)

    def __contains__(self, label) -> bool:
        return label in self._by_label

    def __len__(self) -> int:
        return len(self._by_label)


def resolve_label(candidate: str, known_nodes: Iterable[SkillNode]) -> Optional[SkillNode]:
    return LabelIndex(known_nodes).resolve(candidate)
