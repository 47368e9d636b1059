"""Prompt templates for script generation and the chat assistant."""

from __future__ import annotations

import textwrap

LANGUAGES = ["English", "Russian"]
MIN_SCENES = 5
MAX_SCENES = 10

CHAT_SYSTEM_INSTRUCTION = (
    "You are a helpful assistant for a YouTube content creator. "
    "Answer their questions concisely and helpfully."
)

_QUESTIONS_SECTION = """
The script MUST be based *solely* on the answers to the following questions. Use Google Search to find accurate, up-to-date information to answer them. Structure the video script to answer these questions in a logical and engaging order, with a clear beginning, middle, and end.

Here are the questions:
{questions}
"""

_NARRATIVE_SECTION = """
The script should have a clear narrative structure with a distinct beginning (introduction), middle (elaboration of the main points), and a clear end (conclusion). It must be informative and entertaining for a general audience. Use Google Search to gather fresh and accurate information on the topic.
"""

_SCENES_SECTION = """
Provide exactly {scene_count} scenes, including an introduction and a conclusion.
For each scene, provide:
1. A short, engaging question as a title for the scene.
2. The narrator's script, which should be well-developed and consist of at least 3-5 substantial sentences.
3. A detailed, creative visual prompt for an AI image generator.

IMPORTANT: Your response MUST be a valid JSON object that follows this structure:
{{
  "title": "A catchy and SEO-friendly title for the YouTube video.",
  "scenes": [
    {{
      "title": "A short, engaging question that this scene will answer.",
      "script": "The narrator's lines for this scene. This should be engaging, informative, and well-developed, consisting of at least 3-5 substantial sentences that elaborate on the scene's topic.",
      "visual_prompt": "A concise, descriptive prompt for generating a visually stunning image to accompany this part of the script. Focus on cinematic and engaging imagery."
    }}
  ]
}}
Do not include any text, markdown formatting, or code blocks outside of the main JSON object.
"""


def build_script_prompt(
    topic: str,
    language: str,
    scene_count: int,
    questions: str | None = None,
) -> str:
    """Compose the instruction sent to the text model for one script."""
    parts = [
        textwrap.dedent(
            f"""
            You are a professional YouTube scriptwriter and visual director. Create a complete and engaging script for a video about "{topic}".
            The script's language must be {language}.
            """
        ).strip()
    ]
    if questions and questions.strip():
        parts.append(_QUESTIONS_SECTION.format(questions=questions.strip()).strip())
    else:
        parts.append(_NARRATIVE_SECTION.strip())
    parts.append(_SCENES_SECTION.format(scene_count=scene_count).strip())
    return "\n\n".join(parts)
