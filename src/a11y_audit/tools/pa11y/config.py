import base64
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional

@dataclass
class Pa11yConfig:
    """Pa11y CLI options"""

    standard: str = "WCAG2AA"
    runners: List[str] = field(default_factory=lambda: ["htmlcs"])
    include_notices: bool = True
    include_warnings: bool = True

    # Timing in milliseconds
    timeout: int = 90000
    wait: int = 3000

    hide_elements: Optional[str] = None
    ignore: List[str] = field(default_factory=list)

    # Authentication
    headers: Dict[str, str] = field(default_factory=dict)
    username: Optional[str] = None
    password: Optional[str] = None

    def request_headers(self) -> Dict[str, str]:
        """Headers sent with every page request, including basic auth credentials"""
        headers = dict(self.headers)
        if self.username and self.password and "Authorization" not in headers:
            token = base64.b64encode(f"{self.username}:{self.password}".encode()).decode()
            headers["Authorization"] = f"Basic {token}"
        return headers

    def needs_config_file(self) -> bool:
        return bool(self.request_headers())

    def to_command_args(self, config_path: Optional[str] = None) -> List[str]:
        """Convert configuration to Pa11y command line arguments"""
        args = ["--reporter", "json", "--standard", self.standard]

        for runner in self.runners:
            args.extend(["--runner", runner])

        args.extend([
            "--timeout", str(self.timeout),
            "--wait", str(self.wait)
        ])

        if self.hide_elements:
            args.extend(["--hide-elements", self.hide_elements])

        for rule in self.ignore:
            args.extend(["--ignore", rule])

        if self.include_notices:
            args.append("--include-notices")
        if self.include_warnings:
            args.append("--include-warnings")

        # Headers are only accepted through a JSON config file
        if config_path:
            args.extend(["--config", config_path])

        return args

    def to_config_file(self) -> Dict[str, Any]:
        """Content of the JSON file passed via --config"""
        return {"headers": self.request_headers()}
