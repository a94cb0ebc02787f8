# src/a11y_audit/wcag/__init__.py

from .types import (
    ImpactLevel,
    ToolSource,
    NodeInfo,
    RuleResult,
    RuleResultBuilder,
    AnalyzerResult,
    LighthouseScores,
    LighthouseResult,
    ToolInfo,
    PageResult,
    ReportSummary,
    AccessibilityReport
)

from .analysis_options import (
    AnalysisOptions,
    EngineOptions,
    CustomRulesOptions,
    WaveApiOptions,
    get_preset,
    load_analysis_options
)

from .events import SSEEvent, ProgressCallback, format_sse_data

__all__ = [
    'ImpactLevel',
    'ToolSource',
    'NodeInfo',
    'RuleResult',
    'RuleResultBuilder',
    'AnalyzerResult',
    'LighthouseScores',
    'LighthouseResult',
    'ToolInfo',
    'PageResult',
    'ReportSummary',
    'AccessibilityReport',
    'AnalysisOptions',
    'EngineOptions',
    'CustomRulesOptions',
    'WaveApiOptions',
    'get_preset',
    'load_analysis_options',
    'SSEEvent',
    'ProgressCallback',
    'format_sse_data'
]
