# src/a11y_audit/wcag/analyzers/ibm_analyzer.py

from typing import Dict, Any, List, Optional, Tuple
from playwright.async_api import Page
from a11y_audit.wcag.types import AnalyzerResult, ImpactLevel, NodeInfo, RuleResultBuilder, ToolSource
from .base_analyzer import BaseToolAnalyzer

IBM_VERSION = "4.0.0"
ACE_SCRIPT_URL = "https://unpkg.com/accessibility-checker-engine@latest/ace.js"
IBM_HELP_URL = "https://www.ibm.com/able/requirements/checker/rules/{rule_id}"
DEFAULT_POLICIES = ["WCAG_2_2"]

def ibm_policies_for(wcag_version: str) -> List[str]:
    if wcag_version in ("2.0", "2.1", "2.2"):
        return [f"WCAG_{wcag_version.replace('.', '_')}"]
    return list(DEFAULT_POLICIES)

ACE_RUN_SCRIPT = """async (policies) => {
    const checker = new ace.Checker();
    const report = await checker.check(document, policies);
    return (report.results || []).map(r => ({
        ruleId: r.ruleId,
        message: r.message,
        path: r.path,
        value: r.value,
        snippet: r.snippet
    }));
}"""

RULE_TO_WCAG: Dict[str, List[str]] = {
    # WCAG 2.0/2.1
    'WCAG20_Img_HasAlt': ['1.1.1'],
    'img_alt_valid': ['1.1.1'],
    'WCAG20_Img_LinkTextNotRedundant': ['1.1.1'],
    'WCAG20_A_HasText': ['2.4.4', '4.1.2'],
    'WCAG20_A_TargetAndText': ['2.4.4'],
    'WCAG20_Label_RefValid': ['1.3.1', '4.1.2'],
    'WCAG20_Input_ExplicitLabel': ['1.3.1', '4.1.2'],
    'WCAG20_Input_ExplicitLabelImage': ['1.3.1', '4.1.2'],
    'WCAG21_Label_Accessible': ['1.3.5', '2.5.3'],
    'WCAG20_Input_RadioChkInFieldSet': ['1.3.1'],
    'WCAG20_Fieldset_HasLegend': ['1.3.1'],
    'WCAG20_Table_Structure': ['1.3.1'],
    'WCAG20_Table_CapSummRedundant': ['1.3.1'],
    'WCAG20_Html_HasLang': ['3.1.1'],
    'WCAG20_Doc_HasTitle': ['2.4.2'],
    'WCAG20_Frame_HasTitle': ['2.4.1', '4.1.2'],
    'WCAG20_Body_FirstAContainsSkipText': ['2.4.1'],
    'WCAG20_Elem_UniqueAccessKey': ['2.4.1'],
    'WCAG20_Script_FocusBlurs': ['2.1.2'],
    'WCAG20_Select_HasOptGroup': ['1.3.1'],
    'WCAG20_Style_ColorSemantics1': ['1.4.1'],
    'WCAG20_Style_BeforeAfter': ['1.3.1'],
    'WCAG20_Text_ColorContrast': ['1.4.3'],
    'WCAG20_Text_LetterSpacing': ['1.4.8'],
    'WCAG20_Elem_Lang_Valid': ['3.1.2'],
    'WCAG20_Blink_AlwaysTrigger': ['2.2.2'],
    'WCAG20_Marquee_Trigger': ['2.2.2'],
    'WCAG20_Meta_RedirectZero': ['2.2.1'],
    'WCAG20_Object_HasText': ['1.1.1'],
    'WCAG20_Applet_HasAlt': ['1.1.1'],
    'WCAG20_Area_HasAlt': ['1.1.1'],
    'WCAG20_Embed_HasNoEmbed': ['1.1.1'],
    'RPT_Media_AltBrief': ['1.1.1'],
    'RPT_Media_ImgColorUsage': ['1.4.1'],
    # WCAG 2.2
    'focus-not-obscured': ['2.4.11'],
    'focus_not_obscured_minimum': ['2.4.11'],
    'focus_not_obscured_enhanced': ['2.4.12'],
    'dragging_movements': ['2.5.7'],
    'target-size': ['2.5.8'],
    'target_size_minimum': ['2.5.8'],
    'redundant_entry': ['3.3.7'],
    'accessible_authentication': ['3.3.8'],
    'accessible_authentication_minimum': ['3.3.8'],
    # ARIA
    'aria_role_valid': ['4.1.2'],
    'aria_hidden_focus': ['4.1.2'],
    'aria_activedescendant_valid': ['4.1.2'],
    'aria_attribute_valid': ['4.1.2'],
    'aria_content_in_landmark': ['1.3.1'],
    'aria_child_valid': ['4.1.2'],
    'aria_descendant_valid': ['4.1.2'],
    'aria_eventhandler_role_valid': ['4.1.2'],
    'aria_graphic_labelled': ['1.1.1'],
    'aria_id_unique': ['4.1.1'],
    'aria_landmark_name_unique': ['2.4.1'],
    'aria_main_label_visible': ['2.4.1'],
    'aria_parent_required': ['4.1.2'],
    'aria_region_label_unique': ['2.4.1'],
    'aria_semantics_role': ['4.1.2'],
    'aria_widget_labelled': ['4.1.2'],
}

EXPERIMENTAL_RULES = {
    'focus-not-obscured',
    'focus_not_obscured_minimum',
    'focus_not_obscured_enhanced',
    'dragging_movements',
    'target-size',
    'target_size_minimum',
    'redundant_entry',
    'accessible_authentication',
    'accessible_authentication_minimum',
}

LEVEL_IMPACT = {
    'VIOLATION': ImpactLevel.SERIOUS,
    'POTENTIAL_VIOLATION': ImpactLevel.MODERATE,
    'RECOMMENDATION': ImpactLevel.MODERATE,
    'POTENTIAL_RECOMMENDATION': ImpactLevel.MODERATE,
    'MANUAL': ImpactLevel.MINOR,
}

def classify_value(value: Any) -> Tuple[str, str]:
    """
    Bestimmt Ergebnistyp und Level aus dem IBM value-Paar

    Das Engine-Format ist [Policy, Outcome], z.B. ['VIOLATION', 'FAIL'] oder
    ['RECOMMENDATION', 'POTENTIAL']; bereits reduzierte Level wie 'PASS'
    oder 'POTENTIAL_VIOLATION' im ersten Feld werden ebenfalls akzeptiert.

    Returns:
        (violation|pass|incomplete, Level)
    """
    policy = str(value[0]).upper() if value else ""
    outcome = str(value[1]).upper() if value and len(value) > 1 else ""

    if policy == "PASS" or outcome == "PASS":
        return "pass", "PASS"
    if outcome == "MANUAL" or policy == "MANUAL":
        return "incomplete", "MANUAL"
    if outcome == "POTENTIAL":
        return "incomplete", f"POTENTIAL_{policy}"
    if policy == "VIOLATION":
        return "violation", "VIOLATION"
    return "incomplete", policy

class IBMAnalyzer(BaseToolAnalyzer):
    """Analyzer für IBM Equal Access Checker (ace.js in der Seite)"""

    tool_source = ToolSource.IBM
    tool_name = "ibm"
    version = IBM_VERSION

    def __init__(self, logger=None, timeout_config=None, policies: Optional[List[str]] = None):
        super().__init__(logger, timeout_config)
        self.policies = policies or list(DEFAULT_POLICIES)

    async def _run(self, page: Page, **kwargs: Any) -> AnalyzerResult:
        await page.add_script_tag(url=ACE_SCRIPT_URL)
        await page.wait_for_function("window.ace !== undefined")
        raw_results = await page.evaluate(ACE_RUN_SCRIPT, self.policies)
        return self.process_results(raw_results)

    def process_results(self, raw_results: List[Dict[str, Any]]) -> AnalyzerResult:
        """Gruppiert die Einzelergebnisse nach ruleId"""
        builders = {
            "violation": RuleResultBuilder(self.tool_source),
            "pass": RuleResultBuilder(self.tool_source),
            "incomplete": RuleResultBuilder(self.tool_source),
        }

        for item in raw_results or []:
            rule_id = item.get("ruleId", "unknown")
            result_type, level = classify_value(item.get("value"))
            dom_path = (item.get("path") or {}).get("dom", "")

            extra = {}
            if result_type != "pass":
                extra["impact"] = LEVEL_IMPACT.get(level, ImpactLevel.MINOR)
                extra["is_experimental"] = rule_id in EXPERIMENTAL_RULES

            builders[result_type].add(
                rule_id=rule_id,
                description=item.get("message", ""),
                help_url=IBM_HELP_URL.format(rule_id=rule_id),
                wcag_criteria=RULE_TO_WCAG.get(rule_id, []),
                nodes=[NodeInfo(target=dom_path, xpath=dom_path, html=item.get("snippet") or "")],
                **extra
            )

        return AnalyzerResult(
            violations=builders["violation"].build(),
            passes=builders["pass"].build(),
            incomplete=builders["incomplete"].build()
        )
