# src/a11y_audit/wcag/analyzers/keyboard_tester.py

import logging
from typing import Dict, Any, List, Optional
from playwright.async_api import Page
from a11y_audit.logging_config import get_logger
from a11y_audit.wcag.types import (
    FocusableElement,
    FocusIssue,
    FocusStyles,
    ImpactLevel,
    KeyboardTestResult,
    KeyboardTrap,
    NodeInfo,
    RuleResult,
    RuleResultBuilder,
    ToolSource
)

DEFAULT_MAX_ELEMENTS = 100
DEFAULT_TRAP_DETECTION_THRESHOLD = 3

FOCUSABLE_SELECTORS = [
    'a[href]',
    'button:not([disabled])',
    'input:not([disabled]):not([type="hidden"])',
    'select:not([disabled])',
    'textarea:not([disabled])',
    '[tabindex]:not([tabindex="-1"])',
    '[contenteditable="true"]',
]

# Liefert null wenn kein Element oder <body> fokussiert ist
ACTIVE_ELEMENT_SCRIPT = """() => {
    const el = document.activeElement;
    if (!el || el === document.body) {
        return null;
    }
    const tag = el.tagName.toLowerCase();
    let selector = tag;
    if (el.id) {
        selector = `${tag}#${el.id}`;
    } else if (typeof el.className === 'string' && el.className.trim()) {
        selector = `${tag}.${el.className.trim().split(/\\s+/).join('.')}`;
    }
    const style = window.getComputedStyle(el);
    return {
        selector,
        tagName: tag,
        outline: style.outline,
        boxShadow: style.boxShadow,
        border: style.border
    };
}"""

FOCUSABLE_ELEMENTS_SCRIPT = """(selectors) => {
    const elements = Array.from(document.querySelectorAll(selectors.join(', ')));
    return elements.map(el => {
        const tag = el.tagName.toLowerCase();
        if (el.id) return `${tag}#${el.id}`;
        if (typeof el.className === 'string' && el.className.trim()) {
            return `${tag}.${el.className.trim().split(/\\s+/).join('.')}`;
        }
        return tag;
    });
}"""

KEYBOARD_TRAP_HELP_URL = "https://www.w3.org/WAI/WCAG21/Understanding/no-keyboard-trap.html"
FOCUS_VISIBLE_HELP_URL = "https://www.w3.org/WAI/WCAG21/Understanding/focus-visible.html"

_NONE_VALUES = ("none", "0", "0px")

def _is_none_equivalent(value: Optional[str]) -> bool:
    if not value:
        return True
    return value in _NONE_VALUES or value.startswith("0px ")

def validate_focus_indicator(styles: FocusStyles) -> bool:
    """
    Prüft ob mindestens ein sichtbarer Fokus-Stil gesetzt ist

    outline/border gelten als unsichtbar bei 'none', '0', '0px' oder
    Werten, die mit '0px ' beginnen; box-shadow nur bei 'none'.

    Args:
        styles: Berechnete Fokus-Stile

    Returns:
        True wenn ein Fokus-Indikator vorhanden ist
    """
    has_outline = not _is_none_equivalent(styles.outline)
    has_border = not _is_none_equivalent(styles.border)
    has_box_shadow = bool(styles.box_shadow) and styles.box_shadow != "none"
    return has_outline or has_box_shadow or has_border

class KeyboardTester:
    """Simuliert Tab-Navigation und erkennt Tastaturfallen und fehlende Fokus-Indikatoren"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or get_logger(self.__class__.__name__)

    async def test_keyboard_navigation(self,
                                       page: Page,
                                       max_elements: int = DEFAULT_MAX_ELEMENTS,
                                       trap_detection_threshold: int = DEFAULT_TRAP_DETECTION_THRESHOLD) -> KeyboardTestResult:
        """
        Drückt wiederholt Tab und zeichnet die Fokus-Reihenfolge auf

        Args:
            page: Navigierte Playwright-Seite
            max_elements: Maximale Anzahl Tab-Schritte
            trap_detection_threshold: Anzahl gleicher Fokusziele in Folge für eine Falle

        Returns:
            KeyboardTestResult
        """
        result = KeyboardTestResult()
        last_selector: Optional[str] = None
        same_element_count = 0
        order = 0

        for _ in range(max_elements):
            await page.keyboard.press("Tab")
            info: Optional[Dict[str, Any]] = await page.evaluate(ACTIVE_ELEMENT_SCRIPT)

            # Keine weiteren fokussierbaren Elemente
            if not info:
                break

            selector = info.get("selector") or info.get("tagName", "")

            if selector == last_selector:
                same_element_count += 1
                if same_element_count >= trap_detection_threshold:
                    result.traps.append(KeyboardTrap(
                        selector=selector,
                        description=(
                            f"Focus remained on {selector} for {same_element_count} consecutive "
                            f"Tab presses; keyboard users may not be able to leave this element"
                        )
                    ))
                    self.logger.warning(f"Keyboard trap detected at {selector}")
                    break
            else:
                same_element_count = 1
                last_selector = selector

            styles = FocusStyles(
                outline=info.get("outline") or "none",
                box_shadow=info.get("boxShadow") or "none",
                border=info.get("border") or "none"
            )
            has_indicator = validate_focus_indicator(styles)
            order += 1
            result.tab_order.append(FocusableElement(
                selector=selector,
                order=order,
                has_focus_indicator=has_indicator,
                focus_styles=styles
            ))

            if not has_indicator:
                result.focus_issues.append(FocusIssue(
                    selector=selector,
                    issue="No visible focus indicator (outline, box-shadow or border)"
                ))

        self.logger.info(
            f"Keyboard navigation: {len(result.tab_order)} elements, "
            f"{len(result.traps)} traps, {len(result.focus_issues)} focus issues"
        )
        return result

    async def get_focusable_elements(self, page: Page) -> List[str]:
        """Selektoren aller potentiell fokussierbaren Elemente in DOM-Reihenfolge"""
        return await page.evaluate(FOCUSABLE_ELEMENTS_SCRIPT, FOCUSABLE_SELECTORS)

    @staticmethod
    def to_rule_results(result: KeyboardTestResult) -> List[RuleResult]:
        """Fallen und Fokus-Probleme als Verstöße mit toolSource 'custom'"""
        builder = RuleResultBuilder(ToolSource.CUSTOM)
        for trap in result.traps:
            builder.add(
                rule_id="keyboard-trap",
                description="Keyboard focus cannot leave an element using Tab",
                help_url=KEYBOARD_TRAP_HELP_URL,
                wcag_criteria=["2.1.2"],
                impact=ImpactLevel.CRITICAL,
                nodes=[NodeInfo(target=trap.selector, failure_summary=trap.description)]
            )
        for issue in result.focus_issues:
            builder.add(
                rule_id="focus-visible",
                description="Focusable element has no visible focus indicator",
                help_url=FOCUS_VISIBLE_HELP_URL,
                wcag_criteria=["2.4.7"],
                impact=ImpactLevel.SERIOUS,
                nodes=[NodeInfo(target=issue.selector, failure_summary=issue.issue)]
            )
        return builder.build()
