# src/a11y_audit/wcag/types.py

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any, List, Optional, Tuple, Iterable
from a11y_audit.errors import ErrorKind

MAX_HTML_LENGTH = 200

class ImpactLevel(str, Enum):
    """Schweregrad eines Befunds, von kritisch bis gering"""
    CRITICAL = "critical"
    SERIOUS = "serious"
    MODERATE = "moderate"
    MINOR = "minor"

    @property
    def rank(self) -> int:
        """Höherer Wert bedeutet schwerwiegender"""
        return _IMPACT_RANK[self]

_IMPACT_RANK = {
    ImpactLevel.CRITICAL: 4,
    ImpactLevel.SERIOUS: 3,
    ImpactLevel.MODERATE: 2,
    ImpactLevel.MINOR: 1,
}

class ToolSource(str, Enum):
    """Herkunft eines Befunds"""
    AXE_CORE = "axe-core"
    PA11Y = "pa11y"
    LIGHTHOUSE = "lighthouse"
    IBM = "ibm"
    ALFA = "alfa"
    WAVE = "wave"
    CUSTOM = "custom"

_WCAG_TAG_PATTERN = re.compile(r"^wcag(\d)(\d)(\d+)$")

def extract_wcag_criteria(tags: Iterable[str]) -> List[str]:
    """
    Extrahiert WCAG-Erfolgskriterien aus Tags wie 'wcag111' oder 'wcag1410'

    Args:
        tags: Tags der Engine

    Returns:
        Sortierte, eindeutige Liste im Format 'X.Y.Z'
    """
    criteria = set()
    for tag in tags:
        match = _WCAG_TAG_PATTERN.match(tag)
        if match:
            criteria.add(f"{match.group(1)}.{match.group(2)}.{match.group(3)}")
    return sorted(criteria, key=_criterion_sort_key)

def _criterion_sort_key(criterion: str) -> Tuple[int, ...]:
    return tuple(int(part) for part in criterion.split("."))

def unique_criteria(criteria: Iterable[str]) -> List[str]:
    """Entfernt Duplikate unter Beibehaltung der Reihenfolge"""
    seen = []
    for criterion in criteria:
        if criterion and criterion not in seen:
            seen.append(criterion)
    return seen

def truncate_html(html: Optional[str], max_length: int = MAX_HTML_LENGTH) -> str:
    if not html:
        return ""
    if len(html) <= max_length:
        return html
    return html[:max_length] + "..."

def _drop_none(data: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in data.items() if value is not None}

@dataclass
class NodeInfo:
    """Eine betroffene DOM-Stelle"""
    target: str
    html: str = ""
    xpath: Optional[str] = None
    failure_summary: Optional[str] = None

    def __post_init__(self):
        self.html = truncate_html(self.html)

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            "target": self.target,
            "xpath": self.xpath,
            "html": self.html,
            "failureSummary": self.failure_summary,
        })

@dataclass
class RuleResult:
    """Ein normalisierter Befund (Verstoß, bestanden oder unvollständig)"""
    id: str
    description: str
    node_count: int
    help_url: str
    wcag_criteria: List[str]
    tool_source: ToolSource
    impact: Optional[ImpactLevel] = None
    nodes: Optional[List[NodeInfo]] = None
    raw_score: Optional[float] = None
    classification_reason: Optional[str] = None
    is_experimental: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            "id": self.id,
            "description": self.description,
            "impact": self.impact.value if self.impact else None,
            "nodeCount": self.node_count,
            "helpUrl": self.help_url,
            "wcagCriteria": list(self.wcag_criteria),
            "toolSource": self.tool_source.value,
            "nodes": [node.to_dict() for node in self.nodes] if self.nodes is not None else None,
            "rawScore": self.raw_score,
            "classificationReason": self.classification_reason,
            "isExperimental": self.is_experimental,
        })

class RuleResultBuilder:
    """
    Sammelt Rohbefunde einer Engine und fasst Befunde mit gleichem
    (tool_source, id) zu einem RuleResult zusammen.

    Beschreibung und Impact des ersten Vorkommens bleiben erhalten,
    Knoten werden in Eingangsreihenfolge angehängt.
    """

    def __init__(self, tool_source: ToolSource):
        self.tool_source = tool_source
        self._results: Dict[Tuple[str, str], RuleResult] = {}

    def add(self,
            rule_id: str,
            description: str,
            help_url: str,
            wcag_criteria: Optional[List[str]] = None,
            impact: Optional[ImpactLevel] = None,
            nodes: Optional[List[NodeInfo]] = None,
            node_count: Optional[int] = None,
            **extra: Any) -> RuleResult:
        """
        Fügt einen Rohbefund hinzu

        Args:
            rule_id: Regel-ID der Engine
            description: Beschreibung
            help_url: Hilfe-URL
            wcag_criteria: WCAG-Kriterien
            impact: Schweregrad
            nodes: Betroffene Knoten; None wenn die Engine keine liefert
            node_count: Anzahl ohne Knotenliste (nur wenn nodes None ist)
            extra: Weitere RuleResult-Felder (raw_score, classification_reason, is_experimental)

        Returns:
            Das (ggf. zusammengeführte) RuleResult
        """
        key = (self.tool_source.value, rule_id)
        existing = self._results.get(key)

        if existing is None:
            if nodes is not None:
                count = len(nodes)
            else:
                count = node_count or 0
            result = RuleResult(
                id=rule_id,
                description=description,
                node_count=count,
                help_url=help_url,
                wcag_criteria=unique_criteria(wcag_criteria or []),
                tool_source=self.tool_source,
                impact=impact,
                nodes=list(nodes) if nodes is not None else None,
                **extra
            )
            self._results[key] = result
            return result

        # Gemischte Vorkommen: node_count zählt alle, nodes ist nur ein Auszug
        if nodes is not None:
            if existing.nodes is None:
                existing.nodes = []
            existing.nodes.extend(nodes)
            existing.node_count += len(nodes)
        else:
            existing.node_count += node_count or 0
        existing.wcag_criteria = unique_criteria(existing.wcag_criteria + list(wcag_criteria or []))
        return existing

    def build(self) -> List[RuleResult]:
        return list(self._results.values())

    def __len__(self) -> int:
        return len(self._results)

@dataclass
class AnalyzerResult:
    """Ergebnis eines Engine-Adapters"""
    violations: List[RuleResult] = field(default_factory=list)
    passes: List[RuleResult] = field(default_factory=list)
    incomplete: List[RuleResult] = field(default_factory=list)
    duration: int = 0
    error_kind: Optional[ErrorKind] = None

    @property
    def failed(self) -> bool:
        return self.error_kind is not None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            "violations": [r.to_dict() for r in self.violations],
            "passes": [r.to_dict() for r in self.passes],
            "incomplete": [r.to_dict() for r in self.incomplete],
            "duration": self.duration,
            "errorKind": self.error_kind.value if self.error_kind else None,
        })

@dataclass
class LighthouseScores:
    performance: int = 0
    accessibility: int = 0
    best_practices: int = 0
    seo: int = 0
    pwa: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            "performance": self.performance,
            "accessibility": self.accessibility,
            "bestPractices": self.best_practices,
            "seo": self.seo,
            "pwa": self.pwa,
        })

@dataclass
class LighthouseResult(AnalyzerResult):
    scores: LighthouseScores = field(default_factory=LighthouseScores)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["scores"] = self.scores.to_dict()
        return data

@dataclass
class ToolInfo:
    name: str
    version: str
    duration: int

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "version": self.version, "duration": self.duration}

@dataclass
class PageError:
    message: str
    code: str = "ANALYSIS_ERROR"

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "code": self.code}

@dataclass
class PageResult:
    """Ergebnis einer Seite; bei error sind alle Befundlisten leer"""
    name: str
    url: str
    violations: List[RuleResult] = field(default_factory=list)
    passes: List[RuleResult] = field(default_factory=list)
    incomplete: List[RuleResult] = field(default_factory=list)
    screenshot: Optional[str] = None
    lighthouse_scores: Optional[LighthouseScores] = None
    ai_summary: Optional[Dict[str, Any]] = None
    error: Optional[PageError] = None

    @classmethod
    def failed(cls, name: str, url: str, message: str, code: str = "ANALYSIS_ERROR") -> 'PageResult':
        return cls(name=name, url=url, error=PageError(message=message, code=code))

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            "name": self.name,
            "url": self.url,
            "violations": [r.to_dict() for r in self.violations],
            "passes": [r.to_dict() for r in self.passes],
            "incomplete": [r.to_dict() for r in self.incomplete],
            "screenshot": self.screenshot,
            "lighthouseScores": self.lighthouse_scores.to_dict() if self.lighthouse_scores else None,
            "aiSummary": self.ai_summary,
            "error": self.error.to_dict() if self.error else None,
        })

@dataclass
class ReportSummary:
    total_violations: int = 0
    total_passes: int = 0
    total_incomplete: int = 0

    def add(self, other: 'ReportSummary') -> None:
        self.total_violations += other.total_violations
        self.total_passes += other.total_passes
        self.total_incomplete += other.total_incomplete

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalViolations": self.total_violations,
            "totalPasses": self.total_passes,
            "totalIncomplete": self.total_incomplete,
        }

@dataclass
class AccessibilityReport:
    """Gesamtbericht für eine oder mehrere Seiten"""
    summary: ReportSummary
    pages: List[PageResult]
    tools_used: List[ToolInfo] = field(default_factory=list)
    generated_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    screenshot: Optional[str] = None
    lighthouse_scores: Optional[LighthouseScores] = None
    ai_summary: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            "generatedAt": self.generated_at,
            "summary": self.summary.to_dict(),
            "pages": [page.to_dict() for page in self.pages],
            "screenshot": self.screenshot,
            "toolsUsed": [tool.to_dict() for tool in self.tools_used],
            "lighthouseScores": self.lighthouse_scores.to_dict() if self.lighthouse_scores else None,
            "aiSummary": self.ai_summary,
        })

# Keyboard navigation

@dataclass
class FocusStyles:
    outline: str = "none"
    box_shadow: str = "none"
    border: str = "none"

    def to_dict(self) -> Dict[str, Any]:
        return {"outline": self.outline, "boxShadow": self.box_shadow, "border": self.border}

@dataclass
class FocusableElement:
    selector: str
    order: int
    has_focus_indicator: bool
    focus_styles: FocusStyles

    def to_dict(self) -> Dict[str, Any]:
        return {
            "selector": self.selector,
            "order": self.order,
            "hasFocusIndicator": self.has_focus_indicator,
            "focusStyles": self.focus_styles.to_dict(),
        }

@dataclass
class KeyboardTrap:
    selector: str
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return {"selector": self.selector, "description": self.description}

@dataclass
class FocusIssue:
    selector: str
    issue: str

    def to_dict(self) -> Dict[str, Any]:
        return {"selector": self.selector, "issue": self.issue}

@dataclass
class KeyboardTestResult:
    tab_order: List[FocusableElement] = field(default_factory=list)
    traps: List[KeyboardTrap] = field(default_factory=list)
    focus_issues: List[FocusIssue] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tabOrder": [e.to_dict() for e in self.tab_order],
            "traps": [t.to_dict() for t in self.traps],
            "focusIssues": [i.to_dict() for i in self.focus_issues],
        }

# Live regions

@dataclass
class LiveRegionInfo:
    selector: str
    html: str = ""
    text_content: str = ""
    is_empty: bool = True
    role: Optional[str] = None
    aria_live: Optional[str] = None
    implicit_aria_live: Optional[str] = None
    aria_atomic: Optional[bool] = None
    aria_relevant: Optional[List[str]] = None
    is_nested: bool = False
    parent_live_region: Optional[str] = None

    @property
    def effective_aria_live(self) -> Optional[str]:
        """Explizites aria-live, sonst das implizite der Rolle"""
        return self.aria_live or self.implicit_aria_live

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            "selector": self.selector,
            "role": self.role,
            "ariaLive": self.aria_live,
            "implicitAriaLive": self.implicit_aria_live,
            "ariaAtomic": self.aria_atomic,
            "ariaRelevant": self.aria_relevant,
            "html": self.html,
            "textContent": self.text_content,
            "isEmpty": self.is_empty,
            "isNested": self.is_nested,
            "parentLiveRegion": self.parent_live_region,
        })

@dataclass
class LiveRegionIssue:
    type: str
    severity: str
    selector: str
    message: str
    wcag_criteria: List[str] = field(default_factory=lambda: ["4.1.3"])
    suggestion: Optional[str] = None
    html: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            "type": self.type,
            "severity": self.severity,
            "selector": self.selector,
            "message": self.message,
            "wcagCriteria": list(self.wcag_criteria),
            "suggestion": self.suggestion,
        })

@dataclass
class LiveRegionValidationResult:
    live_regions: List[LiveRegionInfo] = field(default_factory=list)
    issues: List[LiveRegionIssue] = field(default_factory=list)
    by_type: Dict[str, int] = field(default_factory=lambda: {"polite": 0, "assertive": 0, "off": 0})
    by_role: Dict[str, int] = field(default_factory=dict)

    @property
    def total_live_regions(self) -> int:
        return len(self.live_regions)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "liveRegions": [r.to_dict() for r in self.live_regions],
            "issues": [i.to_dict() for i in self.issues],
            "totalLiveRegions": self.total_live_regions,
            "byType": dict(self.by_type),
            "byRole": dict(self.by_role),
        }
