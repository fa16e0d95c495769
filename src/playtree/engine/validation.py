from __future__ import annotations

from collections import Counter

from playtree.contracts import (
    DEFAULT_SCOPE_ID,
    UNLIMITED,
    Playnode,
    Playtree,
    ValidationError,
    ValidationIssue,
    ValidationResult,
)
from playtree.engine.scopes import ScopeLattice


class PlaytreeValidator:
    """Semantic checks over an otherwise well-formed playtree.

    Blocking issues name elements the engine skips on load (dangling references);
    warnings describe data the engine tolerates.
    """

    def validate(self, playtree: Playtree) -> ValidationResult:
        issues: list[ValidationIssue] = []
        issues.extend(self._validate_scopes(playtree))
        for node_id, node in playtree.playnodes.items():
            issues.extend(self._validate_node(playtree, node_id, node))
        issues.extend(self._validate_playroots(playtree))
        issues.extend(self._validate_scope_nesting(playtree))
        ordered = sorted(issues, key=lambda x: (x.severity, x.code, x.entity_id, x.field_path))
        return ValidationResult(ok=not any(i.severity == "blocking" for i in ordered), issues=ordered)

    def require_valid(self, playtree: Playtree) -> ValidationResult:
        result = self.validate(playtree)
        if result.blocking:
            raise ValidationError(result.blocking)
        return result

    def _validate_scopes(self, playtree: Playtree) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        counts = Counter(scope.scope_id for scope in playtree.playscopes)
        for scope_id, count in sorted(counts.items()):
            if count > 1:
                issues.append(_warning("DUPLICATE_SCOPE_ID", "playscopes", str(scope_id), f"scope id {scope_id} declared {count} times"))
        return issues

    def _validate_node(self, playtree: Playtree, node_id: str, node: Playnode) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        if node.node_id != node_id:
            issues.append(_warning("NODE_ID_MISMATCH", f"playnodes.{node_id}.id", node_id, f"playnode id '{node.node_id}' does not match its key"))
        if node.limit < UNLIMITED:
            issues.append(_warning("INVALID_LIMIT", f"playnodes.{node_id}.limit", node_id, "limit must be -1 (unlimited) or non-negative"))

        declared = {scope.scope_id for scope in playtree.playscopes} | {DEFAULT_SCOPE_ID}
        for scope_id in node.playscopes:
            if scope_id not in declared:
                issues.append(_warning("UNDECLARED_SCOPE", f"playnodes.{node_id}.playscopes", node_id, f"scope {scope_id} is not in the scope table"))

        item_ids = Counter(item.item_id for item in node.playitems)
        for item_id, count in sorted(item_ids.items()):
            if count > 1:
                issues.append(_warning("DUPLICATE_ITEM_ID", f"playnodes.{node_id}.playitems", node_id, f"playitem '{item_id}' appears {count} times"))
        for index, item in enumerate(node.playitems):
            path = f"playnodes.{node_id}.playitems[{index}]"
            if item.multiplier < 0:
                issues.append(_warning("NEGATIVE_MULTIPLIER", f"{path}.multiplier", node_id, f"playitem '{item.name}' has a negative multiplier"))
            if item.limit < UNLIMITED:
                issues.append(_warning("INVALID_LIMIT", f"{path}.limit", node_id, f"playitem '{item.name}' limit must be -1 or non-negative"))

        targets = Counter(edge.target_id for edge in node.next)
        for target_id, count in sorted(targets.items()):
            if count > 1:
                issues.append(_warning("DUPLICATE_EDGE_TARGET", f"playnodes.{node_id}.next", node_id, f"{count} playedges lead to '{target_id}'"))
        for index, edge in enumerate(node.next):
            path = f"playnodes.{node_id}.next[{index}]"
            if edge.target_id not in playtree.playnodes:
                issues.append(
                    ValidationIssue(
                        code="DANGLING_EDGE_TARGET",
                        severity="blocking",
                        field_path=f"{path}.targetID",
                        entity_id=node_id,
                        message=f"playedge target '{edge.target_id}' does not exist",
                    )
                )
            if edge.shares < 0:
                issues.append(_warning("NEGATIVE_SHARES", f"{path}.shares", node_id, "shares must be non-negative"))
            if edge.priority < 0:
                issues.append(_warning("NEGATIVE_PRIORITY", f"{path}.priority", node_id, "priority must be non-negative"))
            if edge.limit < UNLIMITED:
                issues.append(_warning("INVALID_LIMIT", f"{path}.limit", node_id, "limit must be -1 (unlimited) or non-negative"))
        return issues

    def _validate_playroots(self, playtree: Playtree) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        if not playtree.playroots:
            issues.append(_warning("NO_PLAYROOTS", "playroots", playtree.summary.playtree_id, "playtree has no playroots"))
            return issues

        for node_id in sorted(playtree.playroots):
            if node_id not in playtree.playnodes:
                issues.append(
                    ValidationIssue(
                        code="DANGLING_PLAYROOT",
                        severity="blocking",
                        field_path=f"playroots.{node_id}",
                        entity_id=node_id,
                        message=f"playroot points at missing playnode '{node_id}'",
                    )
                )

        indices = Counter(root.index for root in playtree.playroots.values())
        for index, count in sorted(indices.items()):
            if count > 1:
                issues.append(_warning("DUPLICATE_PLAYROOT_INDEX", "playroots", str(index), f"playroot index {index} used {count} times"))
        if set(indices) != set(range(len(playtree.playroots))):
            issues.append(_warning("PLAYROOT_INDEX_GAP", "playroots", playtree.summary.playtree_id, "playroot indices do not cover 0..N-1"))
        return issues

    def _validate_scope_nesting(self, playtree: Playtree) -> list[ValidationIssue]:
        lattice = ScopeLattice.from_playnodes(playtree.playnodes)
        issues: list[ValidationIssue] = []
        for node_id, node in playtree.playnodes.items():
            if not lattice.is_chain(node.playscopes):
                issues.append(
                    _warning(
                        "AMBIGUOUS_SCOPE_NESTING",
                        f"playnodes.{node_id}.playscopes",
                        node_id,
                        f"scopes {sorted(node.playscopes)} are not nested; least scope resolves to {lattice.least_of(node.playscopes)}",
                    )
                )
        return issues


def _warning(code: str, field_path: str, entity_id: str, message: str) -> ValidationIssue:
    return ValidationIssue(code=code, severity="warning", field_path=field_path, entity_id=entity_id, message=message)
