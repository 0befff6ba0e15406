"""
The ``translate`` command: fill per-language .resx copies of the base catalog
with machine translations.
"""
import logging
import os
import re
import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Tuple

from aiolimiter import AsyncLimiter
from openai import AsyncOpenAI, OpenAIError
from openai.types.chat import ChatCompletionSystemMessageParam, ChatCompletionUserMessageParam
from tqdm.asyncio import tqdm

from razor_localizer.app_config import AppConfig
from razor_localizer.file_processor import output_path_for, process_files
from razor_localizer.resx_store import culture_of, language_resource_path, load_resources, save_resources
from razor_localizer.translation_validator import (
    check_encoding_and_mojibake,
    check_key_coverage,
    check_placeholder_parity,
)

logger = logging.getLogger(__name__)

MAX_CONSECUTIVE_FAILURES = 5
RESOURCE_PATTERNS = ['*.resx']


@dataclass(frozen=True)
class Result:
    """Outcome of one translation request; ``error`` is set on failure."""
    value: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: str) -> 'Result':
        return cls(value=value)

    @classmethod
    def failure(cls, error: str) -> 'Result':
        return cls(error=error)


class Translator(Protocol):
    async def translate(self, text: str, language_code: str) -> Result:
        ...


def extract_placeholders(text: str) -> Tuple[str, Dict[str, str]]:
    """
    Extract and replace placeholders in the text with unique tokens.

    Args:
        text (str): The text to process.

    Returns:
        Tuple[str, Dict[str, str]]: The processed text and placeholder mapping.
    """
    if not isinstance(text, str):
        raise ValueError("Input text must be a string.")

    # `{0}` / `{name}` placeholders and HTML-like tags
    pattern = re.compile(r'(<[^<>]+>)|({[^{}]+})')
    placeholder_mapping = {}

    def replace_placeholder(match):
        placeholder_token = f"__PH_{uuid.uuid4().hex}__"
        placeholder_mapping[placeholder_token] = match.group(0)
        return placeholder_token

    return pattern.sub(replace_placeholder, text), placeholder_mapping


def restore_placeholders(text: str, placeholder_mapping: Dict[str, str]) -> str:
    for token, placeholder in placeholder_mapping.items():
        text = text.replace(token, placeholder)
    return text


def clean_translated_text(translated_text: str, original_text: str) -> str:
    """
    Removes quotes or square brackets the model wrapped around the translation,
    unless the original text is wrapped the same way.
    """
    if translated_text.startswith('"') and translated_text.endswith('"') and not (
            original_text.startswith('"') and original_text.endswith('"')):
        translated_text = translated_text[1:-1]
    if translated_text.startswith('[') and translated_text.endswith(']') and not (
            original_text.startswith('[') and original_text.endswith(']')):
        translated_text = translated_text[1:-1]
    return translated_text


SYSTEM_PROMPT = """
You are an expert translator specializing in software user interfaces. Translate the text from {source_language} to {target_language}.

**Instructions**:
- **Do not translate or modify placeholder tokens**: Any text enclosed within double underscores `__` (e.g., `__PH_abc123__`) must remain exactly as is.
- **Do not add** any additional characters or punctuation (no square brackets, no quotation marks).
- **Provide only** the translated text.
- Keep the translation brief and consistent with common web application terminology.
"""


class OpenAITranslator:
    """
    Translates single strings with the chat completions API.

    Args:
        config (AppConfig): Supplies the model, the known language codes and the source language.
        client (AsyncOpenAI): The API client.
        rate_limiter (Optional[AsyncLimiter]): Defaults to ``config.requests_per_minute`` per minute.
    """

    def __init__(self, config: AppConfig, client: AsyncOpenAI, rate_limiter: Optional[AsyncLimiter] = None):
        self.config = config
        self.client = client
        self.rate_limiter = rate_limiter or AsyncLimiter(config.requests_per_minute, 60)

    async def translate(self, text: str, language_code: str) -> Result:
        if not text or not text.strip():
            return Result.failure("Nothing to translate: empty text")
        if language_code not in self.config.language_codes:
            return Result.failure(f"Unsupported language code '{language_code}'")

        processed_text, placeholder_mapping = extract_placeholders(text)
        system_prompt = SYSTEM_PROMPT.format(
            source_language=self.config.language_codes.get(self.config.source_language, self.config.source_language),
            target_language=self.config.language_codes[language_code],
        )

        try:
            async with self.rate_limiter:
                response = await self.client.chat.completions.create(
                    model=self.config.model_name,
                    messages=[
                        ChatCompletionSystemMessageParam(role="system", content=system_prompt),
                        ChatCompletionUserMessageParam(role="user", content=processed_text),
                    ],
                    temperature=0.3,
                )
            content = response.choices[0].message.content
        except OpenAIError as api_exc:
            return Result.failure(f"API error: {api_exc.__class__.__name__} - {api_exc}")
        except Exception as general_exc:
            logger.debug("Unexpected translation error", exc_info=True)
            return Result.failure(f"Unexpected error: {general_exc}")

        if not content or not content.strip():
            return Result.failure("Empty response from the model")

        translated_text = restore_placeholders(content.strip(), placeholder_mapping)
        translated_text = clean_translated_text(translated_text, text)
        if not check_placeholder_parity(text, translated_text):
            return Result.failure(f"Placeholder mismatch in translation '{translated_text}'")
        return Result.success(translated_text)


class TranslationAborted(Exception):
    """Raised internally after too many consecutive translation failures."""


class TranslationService:
    """
    Walks the source folder for base .resx files and translates the keys each
    per-language file is missing, one request at a time.
    """

    def __init__(self, config: AppConfig, translator: Optional[Translator] = None):
        self.config = config
        if translator is None and config.openai_client is not None:
            translator = OpenAITranslator(config, config.openai_client)
        self.translator = translator
        self.consecutive_failures = 0
        self.written: List[str] = []

    def base_resource_files(self) -> List[Tuple[str, str]]:
        """
        Base .resx files under the source folder, each with the folder its
        translations go to. Per-language copies are left out.
        """
        found: List[Tuple[str, str]] = []

        def collect(path: str, output_folder: str) -> None:
            if culture_of(path, self.config.language_codes) is None:
                found.append((path, output_folder))

        process_files(self.config.source_folder, self.config.resource_include_patterns or RESOURCE_PATTERNS,
                      collect, self.config.resource_exclude_patterns, self.config.output_folder)
        return found

    async def translate_resource_file(self, base_file: str, language_code: str,
                                      output_folder: Optional[str] = None) -> int:
        """
        Translate the keys of ``base_file`` missing from its ``language_code`` copy.

        Partial progress is written even when the run aborts.

        Returns:
            int: Number of keys translated.

        Raises:
            TranslationAborted: After ``MAX_CONSECUTIVE_FAILURES`` failures in a row.
        """
        if output_folder is None:
            output_folder = output_path_for(base_file, self.config.source_folder, self.config.output_folder)
        target_file = language_resource_path(base_file, language_code, output_folder)

        source = load_resources(base_file)
        existing = load_resources(target_file)
        missing_keys, stale_keys = check_key_coverage(source.keys(), existing.keys())
        if stale_keys:
            logger.warning("%s has %d keys no longer in %s: %s", target_file, len(stale_keys),
                           os.path.basename(base_file), ', '.join(sorted(stale_keys)))

        pending = [key for key in source if key in missing_keys and source[key] and source[key].strip()]
        if not pending:
            logger.info("%s is up to date", target_file)
            return 0

        if self.config.dry_run:
            logger.info("Dry run: %d keys would be translated into %s", len(pending), target_file)
            return 0

        translations = dict(existing)
        translated = 0
        try:
            for key in tqdm(pending, desc=f"{os.path.basename(base_file)} -> {language_code}", unit="key"):
                result = await self.translator.translate(source[key], language_code)
                if result.ok:
                    translations[key] = result.value
                    translated += 1
                    self.consecutive_failures = 0
                    continue
                self.consecutive_failures += 1
                logger.error("Translation of '%s' into %s failed: %s", key, language_code, result.error)
                if self.consecutive_failures >= MAX_CONSECUTIVE_FAILURES:
                    raise TranslationAborted(
                        f"Aborting translation after {self.consecutive_failures} consecutive failures")
        finally:
            if translated:
                # Base file order first, then keys only the translation knows
                ordered = [(key, translations[key]) for key in source if key in translations]
                ordered += [(key, value) for key, value in translations.items() if key not in source]
                save_resources(target_file, ordered)
                self.written.append(target_file)
                logger.info("Wrote %d new translations to %s", translated, target_file)
        return translated

    async def translate_all(self) -> bool:
        """
        Translate every base .resx file into every target language.

        Returns:
            bool: False when the run was aborted after repeated failures.
        """
        base_files = self.base_resource_files()
        if not base_files:
            logger.warning("No base .resx files found in %s", self.config.source_folder)
            return True

        for base_file, output_folder in base_files:
            for error in check_encoding_and_mojibake(base_file):
                logger.warning(error)
            for language_code in self.config.target_languages:
                if language_code == self.config.source_language:
                    logger.warning("Skipping %s: it is the source language", language_code)
                    continue
                try:
                    await self.translate_resource_file(base_file, language_code, output_folder)
                except TranslationAborted as e:
                    logger.error(str(e))
                    return False
        return True
