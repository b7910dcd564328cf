"""Structural validation checks for dialog graphs.

The store and the compiler tolerate broken graphs: roots are repaired,
dangling references skipped, odd conditions emitted as string comparisons.
These checks report those problems instead, so an author can fix them
before exporting. Pure functions, no mutation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

from dialogforge.graph.errors import IssueKind
from dialogforge.graph.paths import as_number
from dialogforge.models.nodes import IfStatementNode, SwitchCaseNode

if TYPE_CHECKING:
    from dialogforge.models.dialog import DialogGraph

# Cap on IDs listed in a single message
_MAX_LISTED = 5


@dataclass
class ValidationCheck:
    """Result of a single validation check.

    Attributes:
        name: Identifier for the check.
        severity: "pass", "warn", or "fail".
        message: Human-readable description of the result.
        issue: Category of the problem found, if any.
    """

    name: str
    severity: Literal["pass", "warn", "fail"]
    message: str = ""
    issue: IssueKind | None = None


@dataclass
class ValidationReport:
    """Aggregated results of validation checks."""

    checks: list[ValidationCheck] = field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        """True if any check has severity 'fail'."""
        return any(c.severity == "fail" for c in self.checks)

    @property
    def has_warnings(self) -> bool:
        """True if any check has severity 'warn'."""
        return any(c.severity == "warn" for c in self.checks)

    @property
    def summary(self) -> str:
        """Human-readable summary of all checks."""
        counts = {
            severity: sum(1 for c in self.checks if c.severity == severity)
            for severity in ("fail", "warn", "pass")
        }
        parts: list[str] = []
        if counts["fail"]:
            parts.append(f"{counts['fail']} failed")
        if counts["warn"]:
            parts.append(f"{counts['warn']} warnings")
        if counts["pass"]:
            parts.append(f"{counts['pass']} passed")
        return ", ".join(parts)


def _listing(ids: list[str]) -> str:
    shown = ", ".join(ids[:_MAX_LISTED])
    if len(ids) > _MAX_LISTED:
        shown += f" (+{len(ids) - _MAX_LISTED} more)"
    return shown


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------


def check_root(graph: DialogGraph) -> ValidationCheck:
    """Verify the stored root references an existing, parentless node."""
    if not graph.nodes:
        return ValidationCheck(name="root", severity="pass", message="Empty dialog")

    root_id = graph.root_node_id
    if root_id is None:
        return ValidationCheck(
            name="root",
            severity="warn",
            message=f"No root set; '{graph.find_root_id()}' would be selected",
            issue=IssueKind.STRUCTURAL_INCONSISTENCY,
        )
    if root_id not in graph.nodes:
        return ValidationCheck(
            name="root",
            severity="fail",
            message=f"Root '{root_id}' does not exist",
            issue=IssueKind.STRUCTURAL_INCONSISTENCY,
        )
    if graph.nodes[root_id].parent_node_ids:
        return ValidationCheck(
            name="root",
            severity="warn",
            message=f"Root '{root_id}' has parents",
            issue=IssueKind.STRUCTURAL_INCONSISTENCY,
        )
    return ValidationCheck(name="root", severity="pass", message=f"Root: {root_id}")


def check_edge_symmetry(graph: DialogGraph) -> ValidationCheck:
    """Verify every child edge has its matching parent edge and vice versa."""
    broken: list[str] = []
    for nid, node in graph.nodes.items():
        for cid in node.child_node_ids:
            child = graph.nodes.get(cid)
            if child is not None and nid not in child.parent_node_ids:
                broken.append(f"{nid}->{cid}")
        for pid in node.parent_node_ids:
            parent = graph.nodes.get(pid)
            if parent is not None and nid not in parent.child_node_ids:
                broken.append(f"{pid}->{nid}")

    if not broken:
        return ValidationCheck(name="edge_symmetry", severity="pass", message="All edges symmetric")
    return ValidationCheck(
        name="edge_symmetry",
        severity="fail",
        message=f"{len(broken)} one-sided edge(s): {_listing(sorted(set(broken)))}",
        issue=IssueKind.ASYMMETRIC_EDGE,
    )


def check_dangling_references(graph: DialogGraph) -> ValidationCheck:
    """Verify edges and switch-case targets point to existing nodes."""
    dangling: list[str] = []
    for nid, node in graph.nodes.items():
        refs = [*node.child_node_ids, *node.parent_node_ids]
        if isinstance(node, SwitchCaseNode):
            refs.extend(case.node_id for case in node.cases if case.node_id)
        dangling.extend(f"{nid}->{ref}" for ref in refs if ref not in graph.nodes)

    if not dangling:
        return ValidationCheck(
            name="dangling_references", severity="pass", message="No dangling references"
        )
    return ValidationCheck(
        name="dangling_references",
        severity="warn",
        message=f"{len(dangling)} reference(s) to missing nodes: {_listing(dangling)}",
        issue=IssueKind.DANGLING_REFERENCE,
    )


def check_reachability(graph: DialogGraph) -> ValidationCheck:
    """Verify every node can be reached from the root.

    Unreachable nodes are never compiled, so they are reported as warnings.
    """
    root_id = graph.find_root_id()
    if root_id is None:
        return ValidationCheck(name="reachability", severity="pass", message="No root to walk")

    seen = {root_id}
    stack = [root_id]
    while stack:
        node = graph.nodes[stack.pop()]
        targets = list(node.child_node_ids)
        if isinstance(node, SwitchCaseNode):
            targets.extend(case.node_id for case in node.cases if case.node_id)
        for target in targets:
            if target in graph.nodes and target not in seen:
                seen.add(target)
                stack.append(target)

    unreachable = sorted(set(graph.nodes) - seen)
    if not unreachable:
        return ValidationCheck(
            name="reachability",
            severity="pass",
            message=f"All {len(graph.nodes)} nodes reachable",
        )
    return ValidationCheck(
        name="reachability",
        severity="warn",
        message=f"{len(unreachable)} node(s) unreachable from root: {_listing(unreachable)}",
    )


def check_conditions(graph: DialogGraph) -> ValidationCheck:
    """Flag branch nodes with missing variables or non-numeric ordering comparisons."""
    problems: list[str] = []
    for nid, node in graph.nodes.items():
        if isinstance(node, IfStatementNode):
            if not node.variable or node.value is None:
                problems.append(f"{nid}: incomplete condition")
            elif node.operator not in ("==", "!=") and as_number(node.value) is None:
                problems.append(f"{nid}: '{node.operator}' against non-numeric {node.value!r}")
        elif isinstance(node, SwitchCaseNode) and not node.variable:
            problems.append(f"{nid}: switch without variable")

    if not problems:
        return ValidationCheck(name="conditions", severity="pass", message="Conditions complete")
    return ValidationCheck(
        name="conditions",
        severity="warn",
        message="; ".join(problems[:_MAX_LISTED]),
        issue=IssueKind.UNRESOLVED_EXPRESSION,
    )


def validate_dialog(graph: DialogGraph) -> ValidationReport:
    """Run all checks and aggregate the results."""
    return ValidationReport(
        checks=[
            check_root(graph),
            check_edge_symmetry(graph),
            check_dangling_references(graph),
            check_reachability(graph),
            check_conditions(graph),
        ]
    )
