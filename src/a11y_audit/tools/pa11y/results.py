import re
from dataclasses import dataclass
from typing import Dict, Any, List, Optional

_WCAG_CODE_PATTERN = re.compile(r"(\d)_(\d)_(\d+)")

@dataclass
class Pa11yIssue:
    """A single issue from the Pa11y JSON reporter"""
    code: str
    message: str
    type: str
    selector: Optional[str] = None
    context: Optional[str] = None
    runner: str = "htmlcs"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Pa11yIssue':
        return cls(
            code=data.get("code", "unknown"),
            message=data.get("message", ""),
            type=data.get("type", "error"),
            selector=data.get("selector"),
            context=data.get("context"),
            runner=data.get("runner", "htmlcs")
        )

    @property
    def wcag_criteria(self) -> List[str]:
        """
        WCAG criteria embedded in the sniff code, e.g.
        WCAG2AA.Principle1.Guideline1_1.1_1_1.H37 -> ['1.1.1']
        """
        criteria = []
        for match in _WCAG_CODE_PATTERN.finditer(self.code):
            criterion = ".".join(match.groups())
            if criterion not in criteria:
                criteria.append(criterion)
        return criteria

def parse_pa11y_output(output: Any) -> List[Pa11yIssue]:
    """Accepts both the bare issue list and the {"issues": [...]} shape"""
    if isinstance(output, list):
        return [Pa11yIssue.from_dict(issue) for issue in output]
    if isinstance(output, dict) and "issues" in output:
        return [Pa11yIssue.from_dict(issue) for issue in output["issues"]]
    raise ValueError(f"Unexpected Pa11y output format: {type(output).__name__}")
