# src/a11y_audit/wcag/analyzers/__init__.py

from .base_analyzer import BaseToolAnalyzer
from .axe_analyzer import AxeAnalyzer, AXE_VERSION, axe_tags_for
from .pa11y_analyzer import Pa11yAnalyzer, PA11Y_VERSION
from .lighthouse_analyzer import LighthouseAnalyzer, LIGHTHOUSE_VERSION
from .ibm_analyzer import IBMAnalyzer, ibm_policies_for
from .alfa_analyzer import AlfaAnalyzer
from .wave_analyzer import WaveAnalyzer, ApiCallCounter
from .keyboard_tester import KeyboardTester, validate_focus_indicator
from .live_region_validator import LiveRegionValidator
from .custom_rules import CustomRulesAnalyzer

__all__ = [
    'BaseToolAnalyzer',
    'AxeAnalyzer',
    'AXE_VERSION',
    'axe_tags_for',
    'Pa11yAnalyzer',
    'PA11Y_VERSION',
    'LighthouseAnalyzer',
    'LIGHTHOUSE_VERSION',
    'IBMAnalyzer',
    'ibm_policies_for',
    'AlfaAnalyzer',
    'WaveAnalyzer',
    'ApiCallCounter',
    'KeyboardTester',
    'validate_focus_indicator',
    'LiveRegionValidator',
    'CustomRulesAnalyzer'
]
