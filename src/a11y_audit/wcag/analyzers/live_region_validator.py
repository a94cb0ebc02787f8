# src/a11y_audit/wcag/analyzers/live_region_validator.py

import logging
from typing import Dict, List, Optional
from bs4 import BeautifulSoup, Tag
from playwright.async_api import Page
from a11y_audit.logging_config import get_logger
from a11y_audit.wcag.types import (
    ImpactLevel,
    LiveRegionInfo,
    LiveRegionIssue,
    LiveRegionValidationResult,
    NodeInfo,
    RuleResult,
    RuleResultBuilder,
    ToolSource,
    truncate_html
)

MAX_TEXT_LENGTH = 100
ARIA_LIVE_HELP_URL = "https://www.w3.org/WAI/WCAG21/Techniques/aria/ARIA19"

ARIA_LIVE_VALUES = ("polite", "assertive", "off")

# Rollen mit impliziter Live-Semantik
IMPLICIT_LIVE_ROLES: Dict[str, str] = {
    "alert": "assertive",
    "alertdialog": "assertive",
    "status": "polite",
    "log": "polite",
    "marquee": "polite",
    "timer": "polite",
}

ATOMIC_RECOMMENDED_ROLES = ("alert", "status")

ISSUE_RULE_IDS = {
    "empty-live-region": "live-region-empty",
    "conflicting-live-settings": "live-region-conflicting",
    "missing-aria-atomic": "live-region-missing-atomic",
    "assertive-without-relevant": "live-region-assertive-no-relevant",
    "nested-live-region": "live-region-nested",
}

ISSUE_DESCRIPTIONS = {
    "empty-live-region": "Live region has no text content",
    "conflicting-live-settings": "Live region role conflicts with aria-live=\"off\"",
    "missing-aria-atomic": "Status or alert region without aria-atomic=\"true\"",
    "assertive-without-relevant": "Assertive live region without aria-relevant",
    "nested-live-region": "Live region nested inside another live region",
}

class LiveRegionValidator:
    """
    Statische Prüfung von ARIA Live Regions auf Basis des HTML.

    Erkennt explizite (aria-live) und implizite (role) Live Regions,
    genau ein Eintrag pro DOM-Element.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or get_logger(self.__class__.__name__)

    async def validate_from_page(self, page: Page) -> LiveRegionValidationResult:
        """Validiert das aktuell gerenderte DOM einer Playwright-Seite"""
        return self.validate_from_html(await page.content())

    def validate_from_html(self, html: str) -> LiveRegionValidationResult:
        """
        Findet und validiert alle Live Regions im Dokument

        Args:
            html: HTML-Quelltext

        Returns:
            LiveRegionValidationResult
        """
        soup = BeautifulSoup(html or "", "html.parser")
        result = LiveRegionValidationResult()

        # id(Tag) -> LiveRegionInfo; Tag.__eq__ vergleicht Inhalt, nicht Identität
        regions_by_node: Dict[int, LiveRegionInfo] = {}

        for element in soup.find_all(True):
            if not self._is_live_region(element):
                continue

            info = self._build_info(soup, element)

            for ancestor in element.parents:
                parent_info = regions_by_node.get(id(ancestor))
                if parent_info is not None:
                    info.is_nested = True
                    info.parent_live_region = parent_info.selector
                    break

            regions_by_node[id(element)] = info
            result.live_regions.append(info)

        for info in result.live_regions:
            result.issues.extend(self._validate(info))

            effective = info.effective_aria_live
            if effective in result.by_type:
                result.by_type[effective] += 1
            if info.role:
                result.by_role[info.role] = result.by_role.get(info.role, 0) + 1

        self.logger.debug(
            f"Found {result.total_live_regions} live regions with {len(result.issues)} issues"
        )
        return result

    @staticmethod
    def _role_of(element: Tag) -> Optional[str]:
        role = element.get("role")
        if not role:
            return None
        tokens = role.strip().lower().split()
        return tokens[0] if tokens else None

    def _is_live_region(self, element: Tag) -> bool:
        return element.has_attr("aria-live") or self._role_of(element) in IMPLICIT_LIVE_ROLES

    def _build_info(self, soup: BeautifulSoup, element: Tag) -> LiveRegionInfo:
        role = self._role_of(element)
        aria_live = (element.get("aria-live") or "").strip().lower()
        atomic = (element.get("aria-atomic") or "").strip().lower()
        relevant = element.get("aria-relevant")
        text = " ".join(element.get_text(" ").split())

        return LiveRegionInfo(
            selector=self.generate_selector(soup, element),
            html=truncate_html(str(element)),
            text_content=text[:MAX_TEXT_LENGTH],
            is_empty=not text,
            role=role,
            aria_live=aria_live if aria_live in ARIA_LIVE_VALUES else None,
            implicit_aria_live=IMPLICIT_LIVE_ROLES.get(role) if role else None,
            aria_atomic={"true": True, "false": False}.get(atomic),
            aria_relevant=relevant.split() if relevant and relevant.strip() else None
        )

    @staticmethod
    def _local_selector(element: Tag) -> str:
        tag = element.name
        parent = element.parent
        if parent is not None:
            siblings = parent.find_all(tag, recursive=False)
            if len(siblings) > 1:
                index = next(i for i, sibling in enumerate(siblings, start=1) if sibling is element)
                return f"{tag}:nth-of-type({index})"
        return tag

    @classmethod
    def generate_selector(cls, soup: BeautifulSoup, element: Tag) -> str:
        """
        Erzeugt einen im Dokument eindeutigen Selektor: #id, tag.klasse
        (wenn eindeutig), tag:nth-of-type(n) oder den Tag-Namen. Ist der
        lokale Selektor mehrdeutig, wird der Selektor des Elternelements
        mit " > " vorangestellt.
        """
        element_id = element.get("id")
        if element_id:
            return f"#{element_id}"

        tag = element.name
        classes = element.get("class") or []
        if classes:
            candidate = f"{tag}.{classes[0]}"
            matches = [el for el in soup.find_all(tag) if classes[0] in (el.get("class") or [])]
            if len(matches) == 1:
                return candidate

        local = cls._local_selector(element)
        matches = [el for el in soup.find_all(tag) if cls._local_selector(el) == local]
        parent = element.parent
        if len(matches) == 1 or parent is None or parent is soup or parent.name == "[document]":
            return local

        return f"{cls.generate_selector(soup, parent)} > {local}"

    def _validate(self, info: LiveRegionInfo) -> List[LiveRegionIssue]:
        issues = []

        if info.is_empty:
            issues.append(LiveRegionIssue(
                type="empty-live-region",
                severity="warning",
                selector=info.selector,
                html=info.html,
                message="Live region is empty. Make sure content is injected when updates occur.",
                suggestion="Keep the container in the DOM and insert the status text dynamically"
            ))

        if info.implicit_aria_live and info.implicit_aria_live != "off" and info.aria_live == "off":
            issues.append(LiveRegionIssue(
                type="conflicting-live-settings",
                severity="warning",
                selector=info.selector,
                html=info.html,
                message=f'role="{info.role}" implies live updates but aria-live="off" disables them.',
                suggestion='Remove aria-live="off" or use a role without live semantics'
            ))

        if info.role in ATOMIC_RECOMMENDED_ROLES and info.aria_atomic is not True:
            issues.append(LiveRegionIssue(
                type="missing-aria-atomic",
                severity="warning",
                selector=info.selector,
                html=info.html,
                message=f'role="{info.role}" without aria-atomic="true"; only changed parts may be announced.',
                suggestion='Add aria-atomic="true" so the whole message is announced'
            ))

        if info.effective_aria_live == "assertive" and info.aria_relevant is None:
            issues.append(LiveRegionIssue(
                type="assertive-without-relevant",
                severity="warning",
                selector=info.selector,
                html=info.html,
                message="Assertive live region without aria-relevant may interrupt users with every change.",
                suggestion='Set aria-relevant (e.g. "additions text") to limit announcements'
            ))

        if info.is_nested:
            issues.append(LiveRegionIssue(
                type="nested-live-region",
                severity="warning",
                selector=info.selector,
                html=info.html,
                message=f"Live region is nested inside {info.parent_live_region}; updates may be announced twice.",
                suggestion="Avoid nesting live regions"
            ))

        return issues

    @staticmethod
    def to_rule_results(result: LiveRegionValidationResult) -> List[RuleResult]:
        """
        Wandelt Live-Region-Probleme in RuleResults (toolSource 'custom')

        Args:
            result: Validierungsergebnis

        Returns:
            Ein RuleResult pro Problemtyp
        """
        builder = RuleResultBuilder(ToolSource.CUSTOM)

        for issue in result.issues:
            builder.add(
                rule_id=ISSUE_RULE_IDS.get(issue.type, f"live-region-{issue.type}"),
                description=ISSUE_DESCRIPTIONS.get(issue.type, issue.message),
                help_url=ARIA_LIVE_HELP_URL,
                wcag_criteria=list(issue.wcag_criteria),
                impact=ImpactLevel.SERIOUS if issue.severity == "error" else ImpactLevel.MODERATE,
                nodes=[NodeInfo(
                    target=issue.selector,
                    html=issue.html,
                    failure_summary=issue.suggestion or issue.message
                )]
            )

        return builder.build()
