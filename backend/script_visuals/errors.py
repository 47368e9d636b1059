"""Error taxonomy shared by the gateway and the controllers.

Every error carries a ``user_message`` that the UI can show as-is.
"""

from __future__ import annotations


class ScriptVisualsError(Exception):
    """Base class for errors surfaced to the user."""

    user_message = "An unexpected error occurred."

    def __init__(self, message: str | None = None):
        self.user_message = message or self.user_message
        super().__init__(self.user_message)


class MissingCredentialsError(ScriptVisualsError):
    user_message = (
        "GEMINI_API_KEY is not set. Add it to your local .env file or Streamlit Secrets."
    )


class InputValidationError(ScriptVisualsError):
    user_message = "Please enter a topic."


class ParseError(ScriptVisualsError):
    user_message = "The model returned an invalid script format. Please try again."


class RequestError(ScriptVisualsError):
    user_message = "Failed to generate script. Please check your prompt and API key."


class ImageGenerationError(ScriptVisualsError):
    user_message = "Failed to generate image."


class ChatError(ScriptVisualsError):
    user_message = "Failed to get a response from the chatbot."
