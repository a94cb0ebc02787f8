from .config import Pa11yConfig
from .results import Pa11yIssue, parse_pa11y_output

__all__ = ['Pa11yConfig', 'Pa11yIssue', 'parse_pa11y_output']
