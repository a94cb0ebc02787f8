# src/a11y_audit/__init__.py
from .analyzer import analyze_url, save_report, PageAnalyzer
from .multi_url_analyzer import analyze_multiple_urls
from .auth import AuthConfig, AuthManager

__version__ = "0.1.0"

__all__ = [
    'analyze_url',
    'analyze_multiple_urls',
    'save_report',
    'PageAnalyzer',
    'AuthConfig',
    'AuthManager'
]
