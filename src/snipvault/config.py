from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

ASSET_DIR = Path(__file__).resolve().parent / "assets"


@dataclass
class SnipvaultConfig:
    """
    Configuration for one snipvault run. This should be passed around explicitly.
    """
    # Fence syntax exposed to document authors: <pre lang="..." line="..."> ... </pre>
    fence_tag: str = "pre"
    # Element wrapping each placeholder; must survive the host's sanitizer.
    placeholder_tag: str = "p"

    # Snippets larger than this are left unhighlighted (rendered verbatim).
    max_body_chars: int = 500_000

    # Highlighting
    pygments_style: str = "default"
    css_class_prefix: str = "highlight-"

    # Wrapping containers: "<target>-wrap5" ... "<target>-wrap", "<target>"
    default_style_target: str = "snipvault"
    wrap_levels: int = 6

    # Static stylesheet assets, resolved as <asset_dir>/<name>.css
    asset_dir: str = field(default_factory=lambda: str(ASSET_DIR))
    asset_url: str = "/static/snipvault"
    css_media: str = "screen"

    # Host rendering
    render_markdown: bool = True
    page_title: str = "snipvault"

    # Per-run JSON reports are written here when set
    report_dir: Optional[str] = None

    def as_dict(self):
        return self.__dict__
