# src/a11y_audit/wcag/analyzers/custom_rules.py

import logging
import re
from typing import Iterator, List, Optional, Tuple
from bs4 import BeautifulSoup, Tag
from playwright.async_api import Page
from a11y_audit.logging_config import get_logger
from a11y_audit.wcag.analysis_options import CustomRulesOptions
from a11y_audit.wcag.types import (
    ImpactLevel,
    NodeInfo,
    RuleResult,
    RuleResultBuilder,
    ToolSource
)
from .live_region_validator import LiveRegionValidator

AMBIGUOUS_LINK = "custom-ambiguous-link"
HEADING_SKIP = "custom-heading-skip"
LONG_ALT = "custom-long-alt"
EMPTY_INTERACTIVE = "custom-empty-interactive"

RULE_INFO = {
    AMBIGUOUS_LINK: (
        "Link text does not describe the link target",
        "https://www.w3.org/WAI/WCAG21/Understanding/link-purpose-in-context.html",
        ImpactLevel.MODERATE,
    ),
    HEADING_SKIP: (
        "Heading levels should only increase by one",
        "https://www.w3.org/WAI/WCAG21/Understanding/info-and-relationships.html",
        ImpactLevel.MODERATE,
    ),
    LONG_ALT: (
        "Alternative text is too long",
        "https://www.w3.org/WAI/WCAG21/Understanding/non-text-content.html",
        ImpactLevel.MINOR,
    ),
    EMPTY_INTERACTIVE: (
        "Buttons and links must have an accessible name",
        "https://www.w3.org/WAI/WCAG21/Understanding/name-role-value.html",
        ImpactLevel.CRITICAL,
    ),
}

# Linktexte ohne Aussage über das Ziel (Japanisch, Englisch)
AMBIGUOUS_LINK_PATTERNS = [
    re.compile(r"^こちら$"),
    re.compile(r"^詳細$"),
    re.compile(r"^クリック$"),
    re.compile(r"^もっと見る$"),
    re.compile(r"^続きを読む$"),
    re.compile(r"^ここをクリック$"),
    re.compile(r"^リンク$"),
    re.compile(r"^(click here|read more|here|more|click|link|details|learn more)$", re.IGNORECASE),
]

_HEADING_TAG = re.compile(r"^h[1-6]$")

Finding = Tuple[str, List[str], Tag, str]

def _text_of(element: Tag) -> str:
    return " ".join(element.get_text(" ").split())

def _accessible_name(element: Tag) -> str:
    """Text, alt eines enthaltenen Bildes, aria-label oder title"""
    name = _text_of(element)
    if not name:
        for img in element.find_all("img"):
            alt = (img.get("alt") or "").strip()
            if alt:
                name = alt
                break
    return name or (element.get("aria-label") or "").strip() or (element.get("title") or "").strip()

class CustomRulesAnalyzer:
    """
    Zusätzliche Inhaltsregeln auf Basis des gerenderten HTML.

    Prüft mehrdeutige Linktexte, übersprungene Überschriftenebenen, zu
    lange alt-Texte sowie Buttons und Links ohne zugänglichen Namen. Jede
    Regel ist über CustomRulesOptions einzeln schaltbar.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or get_logger(self.__class__.__name__)

    async def analyze_page(self, page: Page, options: Optional[CustomRulesOptions] = None) -> List[RuleResult]:
        """Prüft das aktuell gerenderte DOM einer Playwright-Seite"""
        return self.analyze_html(await page.content(), options)

    def analyze_html(self, html: str, options: Optional[CustomRulesOptions] = None) -> List[RuleResult]:
        """
        Führt alle aktivierten Inhaltsregeln aus

        Args:
            html: HTML-Quelltext
            options: Regel-Schalter und maximale alt-Länge

        Returns:
            Verstöße als RuleResults (toolSource 'custom'), zusammengefasst pro Regel
        """
        options = options or CustomRulesOptions()
        soup = BeautifulSoup(html or "", "html.parser")
        builder = RuleResultBuilder(ToolSource.CUSTOM)

        checks = []
        if options.ambiguous_link:
            checks.append(self.check_ambiguous_links(soup))
        if options.heading_skip:
            checks.append(self.check_heading_skip(soup))
        if options.long_alt:
            checks.append(self.check_long_alt(soup, options.max_alt_length))
        if options.empty_interactive:
            checks.append(self.check_empty_interactive(soup))

        for findings in checks:
            for rule_id, criteria, element, message in findings:
                description, help_url, impact = RULE_INFO[rule_id]
                builder.add(
                    rule_id=rule_id,
                    description=description,
                    help_url=help_url,
                    wcag_criteria=criteria,
                    impact=impact,
                    nodes=[NodeInfo(
                        target=LiveRegionValidator.generate_selector(soup, element),
                        html=str(element),
                        failure_summary=message
                    )]
                )

        results = builder.build()
        self.logger.debug(f"Custom rules found {sum(r.node_count for r in results)} issues in {len(results)} rules")
        return results

    @staticmethod
    def check_ambiguous_links(soup: BeautifulSoup) -> Iterator[Finding]:
        for link in soup.find_all("a", href=True):
            text = _text_of(link)
            if text and any(pattern.match(text) for pattern in AMBIGUOUS_LINK_PATTERNS):
                yield (
                    AMBIGUOUS_LINK,
                    ["2.4.4", "2.4.9"],
                    link,
                    f'Link text "{text}" is ambiguous. Describe where the link leads.'
                )

    @staticmethod
    def check_heading_skip(soup: BeautifulSoup) -> Iterator[Finding]:
        previous = 0
        for heading in soup.find_all(_HEADING_TAG):
            level = int(heading.name[1])
            if previous and level > previous + 1:
                yield (
                    HEADING_SKIP,
                    ["1.3.1", "2.4.6"],
                    heading,
                    f"Heading level skips from h{previous} to h{level}."
                )
            previous = level

    @staticmethod
    def check_long_alt(soup: BeautifulSoup, max_length: int) -> Iterator[Finding]:
        for img in soup.find_all("img"):
            alt = img.get("alt") or ""
            # leeres alt markiert dekorative Bilder
            if alt and len(alt) > max_length:
                yield (
                    LONG_ALT,
                    ["1.1.1"],
                    img,
                    f"Alt text has {len(alt)} characters (recommended: at most {max_length})."
                )

    @staticmethod
    def check_empty_interactive(soup: BeautifulSoup) -> Iterator[Finding]:
        for button in soup.find_all("button"):
            if not _accessible_name(button):
                yield (
                    EMPTY_INTERACTIVE,
                    ["4.1.2", "1.1.1"],
                    button,
                    "Button has no accessible name. Add text, aria-label or title."
                )
        for link in soup.find_all("a", href=True):
            if not _accessible_name(link):
                yield (
                    EMPTY_INTERACTIVE,
                    ["4.1.2", "1.1.1", "2.4.4"],
                    link,
                    "Link has no accessible name. Add text, aria-label or title."
                )
