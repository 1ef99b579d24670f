"""Base provider implementing the Template Method pattern.

All providers share the same analysis algorithm:
    analyze() → _build_system_prompt() + _build_user_prompt()
              → _call_with_retry() → _call_api()   ← only this differs per provider
              → ResponseInterpreter.interpret()

Subclasses implement two things only:
  - __init__: validate and store the SDK or HTTP client
  - _call_api: make one raw API call and return the text response

Prompt construction, retry logic and reply interpretation live here so every
provider behaves the same way.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Sequence

from commitlens_core.analysis.interpreter import ResponseInterpreter
from commitlens_core.analysis.models import AnalysisResult

logger = logging.getLogger(__name__)

_MAX_RETRIES = 3
_MAX_TOKENS = 4096


class BaseProvider(ABC):
    MAX_RETRIES: int = _MAX_RETRIES
    MAX_TOKENS: int = _MAX_TOKENS
    MODEL: str = ""

    def __init__(self, model_name: str | None = None, sentinel_tokens: Sequence[str] | None = None):
        self.model_name = model_name or self.MODEL
        self.interpreter = ResponseInterpreter(sentinel_tokens)

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def analyze(
        self,
        file_path: str,
        diff_text: str,
        commit_message: str = "",
        guidelines: str = "",
    ) -> AnalysisResult:
        """Score one file's diff and return the interpreted result.

        A provider that keeps failing yields the fallback result rather than
        raising, so one bad file never aborts a commit.
        """
        system = self._build_system_prompt(guidelines)
        user = self._build_user_prompt(file_path, diff_text, commit_message)
        raw = self._call_with_retry(system, user, self.model_name)
        return self.interpreter.interpret(raw or "")

    def complete(self, prompt: str, model_name: str | None = None) -> str | None:
        """Send a single prompt and return the raw reply, or None after the last retry."""
        return self._call_with_retry("", prompt, model_name or self.model_name)

    # ------------------------------------------------------------------ #
    # Abstract - implement in each provider                               #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _call_api(self, system_prompt: str, user_prompt: str, model: str) -> str:
        """Make a single API call and return the raw text response.

        Should raise on failure; _call_with_retry handles retries and logging.
        """

    # ------------------------------------------------------------------ #
    # Shared implementations                                               #
    # ------------------------------------------------------------------ #

    def _call_with_retry(self, system_prompt: str, user_prompt: str, model: str) -> str | None:
        """Retry _call_api up to MAX_RETRIES times with exponential backoff."""
        for attempt in range(self.MAX_RETRIES):
            try:
                return self._call_api(system_prompt, user_prompt, model)
            except Exception as e:
                if attempt == self.MAX_RETRIES - 1:
                    logger.error(
                        "%s API failed after %d attempts: %s",
                        self.__class__.__name__,
                        self.MAX_RETRIES,
                        e,
                    )
                    return None
                delay = 2**attempt
                logger.warning(
                    "%s API error (attempt %d/%d): %s. Retrying in %ds...",
                    self.__class__.__name__,
                    attempt + 1,
                    self.MAX_RETRIES,
                    e,
                    delay,
                )
                time.sleep(delay)
        return None

    def _build_system_prompt(self, guidelines: str) -> str:
        return f"""You are a strict and precise senior code reviewer.
Score the quality of the change below against five criteria: Clean Code,
SOLID principles, Design Patterns, Testability and Security.

{guidelines}

Rules:
- Judge the code as it is after the change; lines starting with '+' were added,
  lines starting with '-' were removed.
- Score every criterion from 0 to 10.
- Keep comments short and specific to the code shown."""

    def _build_user_prompt(self, file_path: str, diff_text: str, commit_message: str = "") -> str:
        return f"""You are analysing `{file_path}`.

## Commit Message
{commit_message}

## Diff
{diff_text}

### Output Format:
Respond with **only** a valid JSON object:

{{
  "CleanCode": {{"score": <0-10>, "comment": "<short comment>", "subcriteria": {{
    "variableNaming": {{"score": <0-10>, "comment": "..."}},
    "methodNaming": {{"score": <0-10>, "comment": "..."}},
    "functionSize": {{"score": <0-10>, "comment": "..."}},
    "commentUsage": {{"score": <0-10>, "comment": "..."}},
    "codeDuplication": {{"score": <0-10>, "comment": "..."}}
  }}}},
  "SOLID": {{"score": <0-10>, "comment": "<short comment>"}},
  "DesignPatterns": {{"score": <0-10>, "comment": "<short comment>"}},
  "Testability": {{"score": <0-10>, "comment": "<short comment>"}},
  "Security": {{"score": <0-10>, "comment": "<short comment>"}},
  "overallComment": "<one paragraph summary>",
  "refactoringProposal": {{
    "title": "<short title>",
    "description": "<what to change>",
    "originalCode": "<snippet>",
    "proposedCode": "<snippet>",
    "justification": "<why>",
    "priority": <1-5>
  }}
}}

Omit "refactoringProposal" when no refactoring is worth proposing.
Do not return any text outside the JSON object."""
