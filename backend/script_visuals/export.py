"""Self-contained HTML export of a generated script and its visuals."""

from __future__ import annotations

import html
import re
import textwrap
from typing import Mapping

from .models import ScriptData

_NON_ALNUM = re.compile(r"[^a-z0-9]", re.IGNORECASE)

_EXPORT_STYLES = """
body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Helvetica, Arial, sans-serif; line-height: 1.6; padding: 20px; background-color: #111827; color: #d1d5db; }
.container { max-width: 800px; margin: auto; }
h1 { color: #60a5fa; text-align: center; }
h2 { color: #3b82f6; border-bottom: 1px solid #374151; padding-bottom: 5px; }
h3 { color: #9ca3af; margin-top: 10px; margin-bottom: 20px; font-weight: 500; }
p { white-space: pre-wrap; }
img { max-width: 100%; height: auto; border-radius: 8px; margin-top: 15px; }
.scene { background-color: #1f2937; padding: 20px; border-radius: 8px; margin-bottom: 20px; border: 1px solid #374151; }
"""

VISUAL_PLACEHOLDER = "<p><i>Visual not available.</i></p>"


def export_filename(title: str) -> str:
    """``"The History of Black Holes!"`` -> ``"the_history_of_black_holes_.html"``."""
    return f"{_NON_ALNUM.sub('_', title).lower()}.html"


def _scene_block(index: int, scene, image_url: str | None) -> str:
    if image_url:
        visual = (
            f'<img src="{html.escape(image_url, quote=True)}" '
            f'alt="{html.escape(scene.visual_prompt, quote=True)}">'
        )
    else:
        visual = VISUAL_PLACEHOLDER
    return (
        '<div class="scene">\n'
        f"  <h2>Scene {index + 1}</h2>\n"
        f"  <h3>{html.escape(scene.title)}</h3>\n"
        f"  <p>{html.escape(scene.script)}</p>\n"
        f"  {visual}\n"
        "</div>"
    )


def build_export_html(script: ScriptData, image_urls: Mapping[int, str]) -> str:
    scenes = "\n".join(
        _scene_block(index, scene, image_urls.get(index))
        for index, scene in enumerate(script.scenes)
    )
    title = html.escape(script.title)
    return textwrap.dedent(
        """\
        <!DOCTYPE html>
        <html lang="en">
        <head>
        <meta charset="UTF-8">
        <meta name="viewport" content="width=device-width, initial-scale=1.0">
        <title>{title}</title>
        <style>{styles}</style>
        </head>
        <body>
        <div class="container">
        <h1>{title}</h1>
        {scenes}
        </div>
        </body>
        </html>
        """
    ).format(title=title, styles=_EXPORT_STYLES, scenes=scenes)


def build_export(script: ScriptData, image_urls: Mapping[int, str]) -> tuple[str, str]:
    """Return ``(file_name, html_document)`` for the download button."""
    return export_filename(script.title), build_export_html(script, image_urls)
