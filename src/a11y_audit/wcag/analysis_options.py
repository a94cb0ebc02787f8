# src/a11y_audit/wcag/analysis_options.py

from dataclasses import dataclass, field, replace, asdict
from pathlib import Path
from typing import Dict, Any, Optional, Union
import yaml
from a11y_audit.config import get_wave_api_key
from a11y_audit.logging_config import get_logger

logger = get_logger(__name__)

@dataclass
class EngineOptions:
    """Welche Engines für eine Seite ausgeführt werden"""
    axe_core: bool = True
    pa11y: bool = True
    lighthouse: bool = True
    ibm: bool = False
    alfa: bool = False

@dataclass
class WaveApiOptions:
    enabled: bool = False
    api_key: Optional[str] = None

    def resolved_api_key(self) -> str:
        return self.api_key or get_wave_api_key() or ""

@dataclass
class CustomRulesOptions:
    """Eigene DOM-Analysen"""
    keyboard_navigation: bool = False
    live_regions: bool = True
    max_tab_elements: int = 100
    trap_detection_threshold: int = 3
    # Inhaltsregeln (Linktext, Überschriften, alt-Länge, leere Bedienelemente)
    content_rules: bool = False
    ambiguous_link: bool = True
    heading_skip: bool = True
    long_alt: bool = True
    empty_interactive: bool = True
    max_alt_length: int = 100

@dataclass
class AnalysisOptions:
    """Optionen einer Analyse"""
    engines: EngineOptions = field(default_factory=EngineOptions)
    wave_api: WaveApiOptions = field(default_factory=WaveApiOptions)
    custom_rules: CustomRulesOptions = field(default_factory=CustomRulesOptions)
    wcag_version: str = "2.1"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

DEFAULT_ANALYSIS_OPTIONS = AnalysisOptions()

QUICK_ANALYSIS_OPTIONS = AnalysisOptions(
    engines=EngineOptions(axe_core=True, pa11y=False, lighthouse=True, ibm=False, alfa=False),
    custom_rules=CustomRulesOptions(keyboard_navigation=False, live_regions=False),
)

FULL_ANALYSIS_OPTIONS = AnalysisOptions(
    engines=EngineOptions(axe_core=True, pa11y=True, lighthouse=True, ibm=True, alfa=True),
    custom_rules=CustomRulesOptions(keyboard_navigation=True, live_regions=True, content_rules=True),
    wcag_version="2.2",
)

PRESETS = {
    "default": DEFAULT_ANALYSIS_OPTIONS,
    "quick": QUICK_ANALYSIS_OPTIONS,
    "full": FULL_ANALYSIS_OPTIONS,
}

def get_preset(name: str) -> AnalysisOptions:
    """
    Liefert eine Kopie eines Presets

    Args:
        name: default, quick oder full

    Returns:
        AnalysisOptions
    """
    try:
        preset = PRESETS[name.lower()]
    except KeyError:
        raise ValueError(f"Unknown analysis preset: {name}")
    options = replace(
        preset,
        engines=replace(preset.engines),
        wave_api=replace(preset.wave_api),
        custom_rules=replace(preset.custom_rules),
    )
    # FULL nutzt WAVE, sobald ein API-Key vorhanden ist
    if name.lower() == "full" and options.wave_api.resolved_api_key():
        options.wave_api.enabled = True
    return options

def options_from_dict(data: Dict[str, Any]) -> AnalysisOptions:
    """Baut AnalysisOptions aus einem Dict (Preset plus Overrides)"""
    preset_name = str(data.get("preset", "default"))
    options = get_preset(preset_name)

    engines = data.get("engines") or {}
    for key, value in engines.items():
        if hasattr(options.engines, key):
            setattr(options.engines, key, bool(value))
        else:
            logger.warning(f"Ignoring unknown engine option: {key}")

    wave = data.get("wave_api") or {}
    if "enabled" in wave:
        options.wave_api.enabled = bool(wave["enabled"])
    if wave.get("api_key"):
        options.wave_api.api_key = str(wave["api_key"])
        if preset_name.lower() == "full" and "enabled" not in wave:
            options.wave_api.enabled = True

    custom = data.get("custom_rules") or {}
    for key, value in custom.items():
        if hasattr(options.custom_rules, key):
            setattr(options.custom_rules, key, value)
        else:
            logger.warning(f"Ignoring unknown custom rule option: {key}")

    if "wcag_version" in data:
        options.wcag_version = str(data["wcag_version"])

    return options

def load_analysis_options(path: Union[str, Path]) -> AnalysisOptions:
    """Lädt AnalysisOptions aus einer YAML-Datei"""
    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Analysis options in {path} must be a mapping")
    return options_from_dict(data)
