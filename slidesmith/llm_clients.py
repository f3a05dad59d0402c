# slidesmith/llm_clients.py
"""
Provider-agnostic LLM call wrappers.
We support: Gemini, OpenAI, Anthropic and Grok (through its OpenAI-compatible API).
We never persist or log API keys. All requests are made in-memory.

Every provider is a Backend with the same three capabilities: a one-shot
completion (used for outlines and non-streaming refine), an incremental
completion stream, and optionally image generation. The public functions
generate_outline / refine_text / generate_image dispatch on AiConfig.provider.
"""
import json
import logging
import os
import re
from functools import partial
from typing import Any, Callable, Dict, Iterator, List, NamedTuple, Optional

import requests

from .config import AI_TIMEOUT_SECONDS, LANGUAGES, LLM_CONFIG, UNTITLED_SLIDE_TITLE
from .errors import (
    ContentPolicyError,
    MalformedResponseError,
    MissingApiKeyError,
    ProviderError,
    UnsupportedProviderError,
)
from .schemas import AiConfig, Provider, Slide, SlideLayout

logger = logging.getLogger(__name__)

OnChunk = Callable[[str], None]

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com"
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com")
GROK_BASE_URL = os.getenv("GROK_BASE_URL", "https://api.x.ai")
ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"

GEMINI_IMAGE_MODEL = os.getenv("GEMINI_IMAGE_MODEL", "imagen-4.0-generate-001")
OPENAI_IMAGE_MODEL = os.getenv("OPENAI_IMAGE_MODEL", "gpt-image-1")
GROK_IMAGE_MODEL = os.getenv("GROK_IMAGE_MODEL", "grok-2-image")

SAFETY_MESSAGE = "Image generation failed due to safety policies. Please adjust your prompt."
_SAFETY_PATTERN = re.compile(r"safety|content_policy|moderation_blocked", re.IGNORECASE)

LAYOUT_NAMES = [layout.value for layout in SlideLayout]

# Gemini structured-output schema for the outline
OUTLINE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "slides": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "title": {"type": "STRING"},
                    "content": {"type": "ARRAY", "items": {"type": "STRING"}},
                    "layout": {"type": "STRING", "enum": LAYOUT_NAMES},
                },
                "required": ["title", "content", "layout"],
            },
        }
    },
    "required": ["slides"],
}


def _outline_prompt(text: str, language: str) -> Dict[str, str]:
    output_language = LANGUAGES.get(language, LANGUAGES["EN"])
    system = (
        "You are an expert presentation creator. Analyze the document and produce a structured "
        f"presentation outline. All titles and bullet points MUST be in {output_language}.\n"
        "Return STRICT JSON with this schema:\n"
        "{\n"
        "  \"slides\": [\n"
        "     {\"title\": string, \"content\": [string, ...], \"layout\": string}\n"
        "  ]\n"
        "}\n"
        "Layout instructions:\n"
        "- \"TITLE_SLIDE\" for the very first slide: the presentation title, with a subtitle as the only content entry.\n"
        "- \"TITLE_CONTENT\" for standard slides with a title and bullet points.\n"
        "- \"SECTION_HEADER\" to introduce a major topic; content may hold one short description.\n"
        "- \"TWO_COLUMN\" to compare items or show two related lists; prefer an even number of bullets.\n"
        "- \"BLANK\" sparingly, for a single powerful quote (put it in the title) with empty content.\n"
        "Focus on headings, key concepts, data and conclusions, in a logical flow."
    )
    user = (
        "DOCUMENT TEXT:\n"
        "---\n"
        f"{text}\n"
        "---\n\n"
        "Output ONLY valid JSON object, no markdown fences."
    )
    return {"system": system, "user": user}


def _refine_prompt(text: str) -> Dict[str, str]:
    system = (
        "You are an expert copywriter specializing in presentations. Refine the text to be more clear, "
        "concise, and impactful for a presentation slide. You may summarize, rephrase for clarity, or fix "
        "grammar. Respond in the same language as the original text. "
        "Return only the refined text, without any preamble."
    )
    user = f"Original Text:\n---\n{text}\n---\n\nRefined Text:"
    return {"system": system, "user": user}


# ---------------- HTTP plumbing ----------------
def _provider_name(provider: Provider) -> str:
    return LLM_CONFIG[provider.value]["name"]


def _post(name: str, url: str, headers: Dict[str, str], payload: Dict[str, Any],
          stream: bool = False, image: bool = False) -> requests.Response:
    try:
        resp = requests.post(url, headers=headers, json=payload, timeout=AI_TIMEOUT_SECONDS, stream=stream)
    except requests.Timeout as e:
        raise ProviderError(f"{name} request timed out after {AI_TIMEOUT_SECONDS:g}s") from e
    except requests.RequestException as e:
        raise ProviderError(f"{name} request failed: {e.__class__.__name__}") from e

    if resp.status_code >= 400:
        body = resp.text[:500]
        resp.close()
        if image and _SAFETY_PATTERN.search(body):
            raise ContentPolicyError(SAFETY_MESSAGE)
        raise ProviderError(f"{name} error: {resp.status_code} {body}")
    return resp


def _json_body(name: str, resp: requests.Response) -> Dict[str, Any]:
    try:
        data = resp.json()
    except ValueError as e:
        raise MalformedResponseError(f"{name} returned a non-JSON response") from e
    if not isinstance(data, dict):
        raise MalformedResponseError(f"{name} returned an unexpected response")
    return data


def _sse_events(name: str, resp: requests.Response) -> Iterator[Dict[str, Any]]:
    """Yield the JSON payload of each `data:` line of a server-sent event stream."""
    resp.encoding = "utf-8"
    try:
        for line in resp.iter_lines(decode_unicode=True):
            if not line or not line.startswith("data:"):
                continue
            data = line[len("data:"):].strip()
            if data == "[DONE]":
                break
            try:
                event = json.loads(data)
            except json.JSONDecodeError:
                logger.debug("Skipping undecodable stream line from %s", name)
                continue
            if not isinstance(event, dict):
                raise MalformedResponseError(f"{name} streamed an unexpected event")
            yield event
    except requests.RequestException as e:
        raise ProviderError(f"{name} stream interrupted: {e.__class__.__name__}") from e
    finally:
        resp.close()


def _parse_json(text: str) -> Any:
    cleaned = (text or "").strip()
    if cleaned.startswith("```"):
        cleaned = re.sub(r"^```(?:json)?\s*|\s*```$", "", cleaned)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(f"AI returned invalid JSON: {e.msg}") from e


# ---------------- Gemini ----------------
def _gemini_headers(config: AiConfig) -> Dict[str, str]:
    return {"content-type": "application/json", "x-goog-api-key": config.api_key}


def _gemini_payload(prompt: Dict[str, str], schema: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    generation_config: Dict[str, Any] = {"temperature": 0.2}
    if schema is not None:
        generation_config["responseMimeType"] = "application/json"
        generation_config["responseSchema"] = schema
    return {
        "contents": [
            {
                "role": "user",
                "parts": [{"text": f"{prompt['system']}\n\n{prompt['user']}"}],
            }
        ],
        "generationConfig": generation_config,
    }


def _gemini_text(data: Dict[str, Any]) -> str:
    if not isinstance(data, dict):
        raise MalformedResponseError("Gemini returned an unexpected response")
    candidates = data.get("candidates") or []
    if not isinstance(candidates, list):
        raise MalformedResponseError("Gemini returned an unexpected response")
    if not candidates:
        return ""
    try:
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(p.get("text") or "" for p in parts)
    except (AttributeError, TypeError) as e:
        raise MalformedResponseError("Gemini returned an unexpected response") from e


def _gemini_complete(prompt: Dict[str, str], config: AiConfig, schema: Optional[Dict[str, Any]] = None) -> str:
    url = f"{GEMINI_BASE_URL}/v1beta/models/{config.model}:generateContent"
    resp = _post("Gemini", url, _gemini_headers(config), _gemini_payload(prompt, schema))
    data = _json_body("Gemini", resp)
    text = _gemini_text(data)
    if not text:
        raise MalformedResponseError("Gemini returned no text content")
    return text


def _gemini_stream(prompt: Dict[str, str], config: AiConfig) -> Iterator[str]:
    url = f"{GEMINI_BASE_URL}/v1beta/models/{config.model}:streamGenerateContent?alt=sse"
    resp = _post("Gemini", url, _gemini_headers(config), _gemini_payload(prompt), stream=True)
    for event in _sse_events("Gemini", resp):
        yield _gemini_text(event)


def _gemini_image(prompt: str, config: AiConfig) -> str:
    url = f"{GEMINI_BASE_URL}/v1beta/models/{GEMINI_IMAGE_MODEL}:predict"
    payload = {
        "instances": [{"prompt": prompt}],
        "parameters": {"sampleCount": 1, "outputOptions": {"mimeType": "image/png"}},
    }
    resp = _post("Gemini", url, _gemini_headers(config), payload, image=True)
    data = _json_body("Gemini", resp)
    for pred in data.get("predictions") or []:
        b64 = pred.get("bytesBase64Encoded")
        if b64:
            return f"data:{pred.get('mimeType', 'image/png')};base64,{b64}"
    # Imagen drops filtered images from the predictions instead of failing the call
    raise ContentPolicyError(SAFETY_MESSAGE)


# ---------------- OpenAI (and OpenAI-compatible: Grok) ----------------
def _openai_headers(config: AiConfig) -> Dict[str, str]:
    return {
        "Authorization": f"Bearer {config.api_key}",
        "Content-Type": "application/json",
    }


def _openai_payload(prompt: Dict[str, str], config: AiConfig) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "model": config.model,
        "messages": [
            {"role": "system", "content": prompt["system"]},
            {"role": "user", "content": prompt["user"]},
        ],
    }
    # gpt-5 only accepts the default temperature
    if not config.model.startswith("gpt-5"):
        payload["temperature"] = 0.2
    return payload


def _openai_complete(prompt: Dict[str, str], config: AiConfig, schema: Optional[Dict[str, Any]] = None,
                     base_url: str = OPENAI_BASE_URL, name: str = "OpenAI") -> str:
    url = base_url.rstrip("/") + "/v1/chat/completions"
    payload = _openai_payload(prompt, config)
    if schema is not None:
        payload["response_format"] = {"type": "json_object"}
    resp = _post(name, url, _openai_headers(config), payload)
    data = _json_body(name, resp)
    try:
        return data["choices"][0]["message"]["content"] or ""
    except (KeyError, IndexError, TypeError) as e:
        raise MalformedResponseError(f"{name} unexpected response") from e


def _openai_stream(prompt: Dict[str, str], config: AiConfig,
                   base_url: str = OPENAI_BASE_URL, name: str = "OpenAI") -> Iterator[str]:
    url = base_url.rstrip("/") + "/v1/chat/completions"
    payload = _openai_payload(prompt, config)
    payload["stream"] = True
    resp = _post(name, url, _openai_headers(config), payload, stream=True)
    for event in _sse_events(name, resp):
        choices = event.get("choices") or []
        if not choices:
            continue
        if not isinstance(choices[0], dict) or not isinstance(choices[0].get("delta") or {}, dict):
            raise MalformedResponseError(f"{name} streamed an unexpected event")
        yield (choices[0].get("delta") or {}).get("content") or ""


def _openai_image(prompt: str, config: AiConfig, base_url: str = OPENAI_BASE_URL, name: str = "OpenAI",
                  model: str = OPENAI_IMAGE_MODEL, mime_type: str = "image/png",
                  extra: Optional[Dict[str, Any]] = None) -> str:
    url = base_url.rstrip("/") + "/v1/images/generations"
    payload = {"model": model, "prompt": prompt, "n": 1, **(extra or {})}
    resp = _post(name, url, _openai_headers(config), payload, image=True)
    data = _json_body(name, resp)
    items = data.get("data") or []
    if items:
        if items[0].get("b64_json"):
            return f"data:{mime_type};base64,{items[0]['b64_json']}"
        if items[0].get("url"):
            return items[0]["url"]
    raise ProviderError(f"{name} did not return an image.")


# ---------------- Anthropic ----------------
def _anthropic_headers(config: AiConfig) -> Dict[str, str]:
    return {
        "x-api-key": config.api_key,
        "anthropic-version": "2023-06-01",
        "content-type": "application/json",
    }


def _anthropic_payload(prompt: Dict[str, str], config: AiConfig) -> Dict[str, Any]:
    return {
        "model": config.model,
        "max_tokens": 4096,
        "temperature": 0.2,
        "system": prompt["system"],
        "messages": [{"role": "user", "content": [{"type": "text", "text": prompt["user"]}]}],
    }


def _anthropic_complete(prompt: Dict[str, str], config: AiConfig, schema: Optional[Dict[str, Any]] = None) -> str:
    resp = _post("Anthropic", ANTHROPIC_URL, _anthropic_headers(config), _anthropic_payload(prompt, config))
    data = _json_body("Anthropic", resp)
    # Messages API returns a list of content blocks; concatenate the text ones
    text = ""
    for block in data.get("content") or []:
        if block.get("type") == "text":
            text += block.get("text", "")
    if not text:
        raise MalformedResponseError("Anthropic returned no text content")
    return text


def _anthropic_stream(prompt: Dict[str, str], config: AiConfig) -> Iterator[str]:
    payload = _anthropic_payload(prompt, config)
    payload["stream"] = True
    resp = _post("Anthropic", ANTHROPIC_URL, _anthropic_headers(config), payload, stream=True)
    for event in _sse_events("Anthropic", resp):
        kind = event.get("type")
        if kind == "error":
            message = (event.get("error") or {}).get("message", "unknown error")
            raise ProviderError(f"Anthropic stream error: {message}")
        if kind == "content_block_delta":
            yield (event.get("delta") or {}).get("text", "")


# ---------------- Dispatch ----------------
class Backend(NamedTuple):
    complete: Callable[..., str]
    stream: Callable[[Dict[str, str], AiConfig], Iterator[str]]
    image: Optional[Callable[[str, AiConfig], str]]


BACKENDS: Dict[Provider, Backend] = {
    Provider.GEMINI: Backend(_gemini_complete, _gemini_stream, _gemini_image),
    Provider.OPENAI: Backend(_openai_complete, _openai_stream, _openai_image),
    Provider.ANTHROPIC: Backend(_anthropic_complete, _anthropic_stream, None),
    Provider.GROK: Backend(
        partial(_openai_complete, base_url=GROK_BASE_URL, name="Grok"),
        partial(_openai_stream, base_url=GROK_BASE_URL, name="Grok"),
        partial(_openai_image, base_url=GROK_BASE_URL, name="Grok", model=GROK_IMAGE_MODEL,
                mime_type="image/jpeg", extra={"response_format": "b64_json"}),
    ),
}


def _backend_for(config: AiConfig) -> Backend:
    if not config.api_key:
        raise MissingApiKeyError(config.provider.value)
    backend = BACKENDS.get(config.provider)
    if backend is None:
        raise UnsupportedProviderError(f"Unsupported AI provider: {config.provider.value}")
    return backend


def slides_from_response(raw: str) -> List[Slide]:
    """
    Turn the model's JSON into slides. The batch only fails when the payload
    is not a non-empty array of descriptors; individual malformed descriptors
    fall back to a placeholder title, empty content and TITLE_CONTENT layout.
    """
    data = _parse_json(raw)
    if isinstance(data, dict):
        data = data.get("slides")
    if not isinstance(data, list) or not data:
        raise MalformedResponseError("AI returned an invalid format. Expected an array of slides.")

    slides: List[Slide] = []
    for item in data:
        if not isinstance(item, dict):
            item = {}
        title = item.get("title")
        if not isinstance(title, str) or not title.strip():
            title = UNTITLED_SLIDE_TITLE
        content = item.get("content")
        if not isinstance(content, (list, str)):
            content = []
        slides.append(Slide(title=title, content=content, layout=item.get("layout")))
    return slides


def generate_outline(config: AiConfig, document_text: str, language: str = "EN") -> List[Slide]:
    backend = _backend_for(config)
    logger.info("Generating outline with %s/%s from %d characters",
                config.provider.value, config.model, len(document_text))
    raw = backend.complete(_outline_prompt(document_text, language), config, OUTLINE_SCHEMA)
    slides = slides_from_response(raw)
    logger.info("Outline has %d slides", len(slides))
    return slides


def refine_text(config: AiConfig, text: str, on_chunk: Optional[OnChunk] = None) -> str:
    """
    Refine one text fragment. With on_chunk, cumulative partial text is
    delivered as it streams in and the final trimmed text is always delivered
    last, so a consumer mirroring the callback ends on the returned value.
    """
    backend = _backend_for(config)
    prompt = _refine_prompt(text)
    if on_chunk is None:
        final = backend.complete(prompt, config).strip()
    else:
        accumulated = ""
        for delta in backend.stream(prompt, config):
            if not delta:
                continue
            accumulated += delta
            on_chunk(accumulated)
        final = accumulated.strip()

    if not final:
        raise MalformedResponseError("AI returned an empty refinement.")
    if on_chunk is not None:
        on_chunk(final)
    return final


def generate_image(config: AiConfig, prompt: str) -> str:
    backend = _backend_for(config)
    if backend.image is None:
        raise UnsupportedProviderError(
            f"{_provider_name(config.provider)} image generation is not implemented yet."
        )
    logger.info("Generating image with %s", config.provider.value)
    return backend.image(prompt, config)
