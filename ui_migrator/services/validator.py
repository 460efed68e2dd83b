"""Migration validator checking generated artifacts against the original component."""

import re
import logging
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple

from .analyzer import BusinessLogicAnalyzer
from ..errors import AnalysisError
from ..extractors.syntax import SyntaxTree, callee_path, child_of_type, parse_source, walk
from ..extractors.tsx_extractor import find_type_declarations, import_bindings
from ..models.business_logic import BusinessLogicModel, PatternCategory
from ..models.component import ComponentKind, ComponentModel
from ..models.migration import ValidationSettings
from ..models.record import (
    ArtifactKind,
    GeneratedArtifact,
    Severity,
    ValidationIssue,
    ValidationOutcome,
)

logger = logging.getLogger(__name__)

VIEW_KINDS = (ComponentKind.STATELESS_VIEW, ComponentKind.STATEFUL_VIEW, ComponentKind.CLASS_BASED_VIEW)

PENALTIES = {
    Severity.CRITICAL: 40,
    Severity.HIGH: 20,
    Severity.MEDIUM: 10,
}
WARNING_PENALTY = 5
MANUAL_REVIEW_PENALTY = 10

REQUIRED_ARTIFACTS = (ArtifactKind.PRIMARY_SOURCE, ArtifactKind.BARREL, ArtifactKind.DOCUMENTATION)

CustomCheck = Callable[[ComponentModel, Sequence[GeneratedArtifact]], List[ValidationIssue]]


class MigrationValidator:
    """
    Validator for generated component artifacts.

    Supports:
    - Artifact presence and syntax checks
    - Target dialect type rules
    - Business logic equivalence by re-analyzing the generated source
    - Custom checks
    """

    def __init__(
        self,
        settings: Optional[ValidationSettings] = None,
        analyzer: Optional[BusinessLogicAnalyzer] = None,
    ):
        self.settings = settings or ValidationSettings()
        self.analyzer = analyzer or BusinessLogicAnalyzer()
        self._custom_checks: Dict[str, CustomCheck] = {}

    def register_check(self, name: str, func: CustomCheck) -> None:
        """Register a custom check; its issues count like built-in ones."""
        self._custom_checks[name] = func

    def validate(
        self,
        original: ComponentModel,
        artifacts: Sequence[GeneratedArtifact],
        requires_manual_review: bool = False,
    ) -> ValidationOutcome:
        """
        Validate the artifacts generated for one component.

        Args:
            original: The analyzed source component
            artifacts: Artifacts produced by the generator
            requires_manual_review: Whether the transformer flagged the output

        Returns:
            ValidationOutcome; a failed validation is an outcome, never an exception
        """
        issues: List[ValidationIssue] = []
        checks: List[Tuple[str, bool]] = []
        pattern_counts: Tuple[Tuple[str, int, int], ...] = ()
        by_kind = {a.kind: a for a in artifacts}

        found = self._check_files(by_kind)
        checks.append(("file_exists", not found))
        issues.extend(found)

        tree: Optional[SyntaxTree] = None
        primary = by_kind.get(ArtifactKind.PRIMARY_SOURCE)
        if primary is not None and primary.content.strip():
            parsed = parse_source(primary.content, primary.relative_path)
            if parsed.has_errors:
                issues.append(ValidationIssue(
                    check="parseable",
                    message=f"{primary.relative_path} has syntax errors near line {parsed.first_error_line()}",
                    severity=Severity.CRITICAL,
                ))
            else:
                tree = parsed
        checks.append(("parseable", tree is not None))

        original_logic = self._original_logic(original)
        generated_logic: Optional[BusinessLogicModel] = None
        if tree is not None:
            try:
                generated_logic = self.analyzer.analyze_tree(tree, primary_name=original.name)
            except AnalysisError as e:
                issues.append(ValidationIssue(
                    check="business_logic",
                    message=f"Generated source fails analysis: {e}",
                    severity=Severity.CRITICAL,
                ))

        if self.settings.check_types and tree is not None:
            found = self._check_types(original, tree, by_kind, original_logic, generated_logic)
            checks.append(("type_rules", not any(i.severity != Severity.LOW for i in found)))
            issues.extend(found)

        if self.settings.check_structure and tree is not None:
            found = self._check_structure(original, primary, by_kind)
            checks.append(("structure", not any(i.severity != Severity.LOW for i in found)))
            issues.extend(found)

        if generated_logic is not None:
            # Lost categories are always checked; the flag only governs count mismatches.
            found, pattern_counts = self._check_business_logic(original_logic, generated_logic)
            if not self.settings.check_business_logic:
                found = [i for i in found if i.severity == Severity.CRITICAL]
            checks.append(("business_logic", not any(i.severity != Severity.LOW for i in found)))
            issues.extend(found)

        for name, func in self._custom_checks.items():
            found = func(original, artifacts)
            checks.append((name, not found))
            issues.extend(found)

        errors = tuple(i for i in issues if i.severity != Severity.LOW)
        warnings = tuple(i for i in issues if i.severity == Severity.LOW)
        score = self.score(errors, warnings, requires_manual_review)

        if errors:
            logger.info(f"Validation of {original.id} failed with {len(errors)} error(s), score {score}")
        return ValidationOutcome(
            valid=not errors,
            score=score,
            errors=errors,
            warnings=warnings,
            checks=tuple(checks),
            pattern_counts=pattern_counts,
        )

    def score(
        self,
        errors: Sequence[ValidationIssue],
        warnings: Sequence[ValidationIssue],
        requires_manual_review: bool = False,
    ) -> int:
        """100 minus severity penalties, clamped to [0, 100]."""
        penalty = sum(PENALTIES.get(e.severity, 0) for e in errors)
        penalty += WARNING_PENALTY * len(warnings)
        if requires_manual_review:
            penalty += MANUAL_REVIEW_PENALTY
        return max(0, min(100, 100 - penalty))

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def _original_logic(self, original: ComponentModel) -> BusinessLogicModel:
        if original.business_logic is not None:
            return original.business_logic
        return self.analyzer.analyze(original)

    def _check_files(self, by_kind: Dict[ArtifactKind, GeneratedArtifact]) -> List[ValidationIssue]:
        issues = []
        for kind in REQUIRED_ARTIFACTS:
            artifact = by_kind.get(kind)
            if artifact is None:
                issues.append(ValidationIssue(
                    check="file_exists", message=f"Missing {kind.value} artifact", severity=Severity.CRITICAL,
                ))
            elif not artifact.content.strip():
                issues.append(ValidationIssue(
                    check="file_exists", message=f"{artifact.relative_path} is empty", severity=Severity.CRITICAL,
                ))
        return issues

    def _check_types(
        self,
        original: ComponentModel,
        tree: SyntaxTree,
        by_kind: Dict[ArtifactKind, GeneratedArtifact],
        original_logic: BusinessLogicModel,
        generated_logic: Optional[BusinessLogicModel],
    ) -> List[ValidationIssue]:
        issues = []
        content = tree.source.decode("utf-8")

        if original.kind in VIEW_KINDS:
            match = re.search(rf"export const {re.escape(original.name)}: FC<([\w.]+)", content)
            if match:
                props_name = match.group(1)
                if props_name not in self._declared_types(tree):
                    issues.append(ValidationIssue(
                        check="type_rules",
                        message=f"Props type {props_name} is used but never declared or imported",
                        severity=Severity.HIGH,
                    ))
            elif re.search(rf"export function {re.escape(original.name)}\b", content):
                issues.append(ValidationIssue(
                    check="type_rules",
                    message=f"{original.name} is declared as a plain function without FC props typing",
                    severity=Severity.LOW,
                ))
            else:
                issues.append(ValidationIssue(
                    check="type_rules",
                    message=f"{original.name} is not declared as FC<Props>",
                    severity=Severity.HIGH,
                ))

            if self._this_outside_classes(tree):
                issues.append(ValidationIssue(
                    check="type_rules",
                    message="`this` is referenced in a function component",
                    severity=Severity.HIGH,
                ))

        for node in walk(tree.root):
            if node.type == "call_expression" and callee_path(tree, node) in ("container.resolve", "registry.resolve"):
                issues.append(ValidationIssue(
                    check="type_rules",
                    message=f"Global registry lookup remains at line {tree.line(node)}",
                    severity=Severity.HIGH,
                ))

        if generated_logic is not None:
            declared = set(generated_logic.setters)
            for node in walk(tree.root):
                if node.type != "call_expression":
                    continue
                callee = callee_path(tree, node)
                if callee in original_logic.setters and callee not in declared:
                    issues.append(ValidationIssue(
                        check="type_rules",
                        message=f"Setter {callee} is called at line {tree.line(node)} but never declared",
                        severity=Severity.HIGH,
                    ))
                    declared.add(callee)

        barrel = by_kind.get(ArtifactKind.BARREL)
        primary = by_kind.get(ArtifactKind.PRIMARY_SOURCE)
        if barrel is not None and primary is not None:
            module = primary.relative_path.rsplit("/", 1)[-1].rsplit(".", 1)[0]
            if f"./{module}'" not in barrel.content and f'./{module}"' not in barrel.content:
                issues.append(ValidationIssue(
                    check="type_rules",
                    message=f"Barrel does not re-export ./{module}",
                    severity=Severity.MEDIUM,
                ))
        return issues

    def _declared_types(self, tree: SyntaxTree) -> Set[str]:
        names = set(find_type_declarations(tree))
        for statement in tree.root.named_children:
            if statement.type == "import_statement":
                clause = child_of_type(statement, "import_clause")
                if clause is not None:
                    names.update(name for name, _ in import_bindings(tree, clause))
        return names

    def _this_outside_classes(self, tree: SyntaxTree) -> bool:
        for node in walk(tree.root, skip=("class_body",)):
            if node.type == "this":
                return True
        return False

    def _check_structure(
        self,
        original: ComponentModel,
        primary: GeneratedArtifact,
        by_kind: Dict[ArtifactKind, GeneratedArtifact],
    ) -> List[ValidationIssue]:
        issues = []
        if not re.search(r"^export default \w+;", primary.content, re.MULTILINE):
            issues.append(ValidationIssue(
                check="structure",
                message=f"{primary.relative_path} has no default export",
                severity=Severity.MEDIUM,
            ))
        readme = by_kind.get(ArtifactKind.DOCUMENTATION)
        if readme is not None and not readme.content.startswith(f"# {original.name}"):
            issues.append(ValidationIssue(
                check="structure",
                message="README does not start with the component heading",
                severity=Severity.LOW,
            ))
        return issues

    def _check_business_logic(
        self,
        original: BusinessLogicModel,
        generated: BusinessLogicModel,
    ) -> Tuple[List[ValidationIssue], Tuple[Tuple[str, int, int], ...]]:
        issues = []
        counts = []
        before, after = original.counts(), generated.counts()
        for category in PatternCategory:
            expected, actual = before[category], after[category]
            counts.append((category.value, expected, actual))
            if expected and not actual:
                issues.append(ValidationIssue(
                    check="business_logic",
                    message=f"All {category.value} patterns were lost ({expected} -> 0)",
                    severity=Severity.CRITICAL,
                    category=category.value,
                ))
            elif expected != actual:
                issues.append(ValidationIssue(
                    check="business_logic",
                    message=f"{category.value} count changed ({expected} -> {actual})",
                    severity=Severity.HIGH if self.settings.strict else Severity.LOW,
                    category=category.value,
                ))
        return issues, tuple(counts)
