"""
Single-turn LiteLLM chat calls used for page planning and reference description.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Sequence

from litellm import completion

from .errors import ProviderFailure
from .media import ReferenceImage


@dataclass
class ChatResult:
    """
    Text of the first choice plus the raw LiteLLM response.
    """

    text: str
    raw: Any


CompletionCallable = Callable[..., ChatResult]


def complete_chat(
    prompt: str,
    images: Sequence[ReferenceImage] = (),
    *,
    model: str,
    system: str | None = None,
    temperature: float | None = None,
    max_tokens: int | None = None,
    **options: Any,
) -> ChatResult:
    """
    Send one user turn, with optional reference images, and return the reply text.

    Parameters
    ----------
    prompt:
        User instruction.
    images:
        Reference images attached as ``image_url`` data-URI parts.
    model:
        LiteLLM model string.
    system:
        Optional system message placed before the user turn.
    options:
        Forwarded to :func:`litellm.completion` untouched (``api_key``,
        ``timeout``, ``vertex_project`` and so on). ``None`` values are dropped.
    """
    request: dict[str, Any] = {
        "model": model,
        "messages": _chat_messages(prompt, images, system),
        "temperature": temperature,
        "max_tokens": max_tokens,
        **options,
    }
    response = completion(**{key: value for key, value in request.items() if value is not None})
    return ChatResult(text=_reply_text(response, model), raw=response)


def _chat_messages(
    prompt: str,
    images: Sequence[ReferenceImage],
    system: str | None,
) -> list[dict[str, Any]]:
    messages: list[dict[str, Any]] = []
    if system:
        messages.append({"role": "system", "content": system})

    if not images:
        messages.append({"role": "user", "content": prompt})
        return messages

    content: list[dict[str, Any]] = [{"type": "text", "text": prompt}]
    content.extend(
        {"type": "image_url", "image_url": {"url": image.to_data_uri()}} for image in images
    )
    messages.append({"role": "user", "content": content})
    return messages


def _reply_text(response: Any, model: str) -> str:
    try:
        content = response["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise ProviderFailure(f"{model} returned a response without a message.") from exc

    # Some vision models answer with a list of typed parts instead of a string.
    if isinstance(content, list):
        content = "".join(
            part.get("text") or "" for part in content if isinstance(part, dict)
        )
    if content is None:
        raise ProviderFailure(f"{model} returned no text content.")
    return str(content).strip()
