import enum
import json
import logging
import re
from typing import AsyncIterator, Optional

import httpx

from sharebook.errors import UpstreamError

logger = logging.getLogger(__name__)


class AssistantMode(str, enum.Enum):
    writer = "writer"
    editor = "editor"
    researcher = "researcher"
    summarizer = "summarizer"
    translator = "translator"


MODE_DESCRIPTIONS = {
    AssistantMode.writer: "Helps with creative writing, storytelling, and dialogue",
    AssistantMode.editor: "Improves grammar, clarity, and style",
    AssistantMode.researcher: "Provides information and facts on various topics",
    AssistantMode.summarizer: "Condenses text while preserving key points",
    AssistantMode.translator: "Assists with language translation",
}

QUICK_PROMPTS = {
    AssistantMode.writer: [
        "Write a descriptive paragraph about...",
        "Create dialogue between two characters who...",
        "Develop a plot twist where...",
        "Describe a setting for a scene where...",
    ],
    AssistantMode.editor: [
        "Improve the clarity of this paragraph",
        "Make this text more concise",
        "Suggest a better way to phrase this",
        "Fix grammar and style issues in this text",
    ],
    AssistantMode.researcher: [
        "Provide information about...",
        "What are the key facts about...",
        "Explain the concept of...",
        "What's the historical context of...",
    ],
    AssistantMode.summarizer: [
        "Summarize this text in one paragraph",
        "Create bullet points from this content",
        "Condense this information for a quick overview",
        "Extract the main ideas from this text",
    ],
    AssistantMode.translator: [
        "Translate this text to Spanish",
        "How would you say this in French?",
        "Convert this technical language to simple terms",
        "Rewrite this for a younger audience",
    ],
}


def compose_prompt(prompt: str, mode: AssistantMode, context: Optional[str] = None) -> str:
    mode = AssistantMode(mode)
    full = f"You are a helpful AI assistant. Your current mode is {mode.value}."
    if context:
        full += f"\n\nContext: {context}"
    full += f"\n\nUser Prompt: {prompt}"
    full += "\n\nResponse:"
    return full


def _strip_fences(out: str) -> str:
    """Prefer content inside triple backticks if the model wrapped its JSON."""
    s = (out or "").strip()
    m = re.search(r"```(?:\w+)?\s*([\s\S]*?)```", s)
    if m and m.group(1).strip():
        s = m.group(1).strip()
    return s


class LLMClient:
    """OpenAI-compatible /chat/completions client bound to one user's key."""

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    def _payload(self, prompt: str, temperature: float, stream: bool) -> dict:
        return {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
            "stream": stream,
        }

    @property
    def _headers(self) -> dict:
        return {"Authorization": f"Bearer {self.api_key}"}

    async def complete(self, prompt: str, temperature: float = 0.7) -> str:
        url = f"{self.base_url}/chat/completions"
        try:
            async with self._client() as client:
                r = await client.post(url, json=self._payload(prompt, temperature, False), headers=self._headers)
                r.raise_for_status()
                data = r.json()
        except httpx.HTTPError as e:
            raise UpstreamError(f"Completion request failed: {e}") from e

        try:
            out = data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as e:
            raise UpstreamError("Malformed completion response") from e
        if not out:
            raise UpstreamError("Empty response from completion API.")
        return out

    async def stream(self, prompt: str, temperature: float = 0.7) -> AsyncIterator[str]:
        """Yield text chunks from the server-sent event stream."""
        url = f"{self.base_url}/chat/completions"
        try:
            async with self._client() as client:
                async with client.stream(
                    "POST", url, json=self._payload(prompt, temperature, True), headers=self._headers
                ) as r:
                    r.raise_for_status()
                    async for line in r.aiter_lines():
                        if not line.startswith("data:"):
                            continue
                        body = line[len("data:"):].strip()
                        if body == "[DONE]":
                            break
                        try:
                            delta = json.loads(body)["choices"][0].get("delta") or {}
                            chunk = delta.get("content")
                        except (ValueError, KeyError, IndexError, AttributeError, TypeError) as e:
                            raise UpstreamError("Malformed stream chunk") from e
                        if chunk:
                            yield chunk
        except httpx.HTTPError as e:
            raise UpstreamError(f"Completion stream failed: {e}") from e

    async def complete_json(self, prompt: str, temperature: float = 0.7):
        raw = await self.complete(prompt, temperature=temperature)
        try:
            return json.loads(_strip_fences(raw))
        except ValueError as e:
            raise UpstreamError(f"Model returned non-JSON: {raw[:200]}") from e


#------ writing helpers ------------

async def generate_chapter_ideas(client: LLMClient, book_title: str, book_description: str, chapter_count: int = 5) -> list[dict]:
    """
    Returns [{title, description}, ...]. Falls back to numbered placeholders
    when the model fails or answers with something that isn't a JSON list.
    """
    prompt = (
        f'Create an outline for a book titled "{book_title}" about "{book_description}".\n'
        f"Generate {chapter_count} chapters with titles and brief descriptions.\n"
        "Format the response as a JSON array of objects, each with 'title' and 'description' properties.\n"
        "Make the titles engaging and the descriptions informative but concise."
    )
    try:
        out = await client.complete_json(prompt)
        if not isinstance(out, list):
            raise UpstreamError("Chapter ideas were not a JSON list")
        return [
            {"title": str(item.get("title") or "").strip(), "description": str(item.get("description") or "").strip()}
            for item in out
            if isinstance(item, dict)
        ]
    except UpstreamError:
        logger.exception("Error generating chapter ideas")
        return [
            {"title": f"Chapter {i + 1}", "description": "Chapter description will go here."}
            for i in range(chapter_count)
        ]


async def improve_text(client: LLMClient, text: str, instruction: str) -> str:
    """Rewrite `text` per `instruction`; on failure the original text comes back."""
    prompt = (
        f'Improve the following text according to this instruction: "{instruction}"\n\n'
        f'Text to improve:\n"{text}"\n\n'
        "Return only the improved text without any additional explanations."
    )
    try:
        return await client.complete(prompt)
    except UpstreamError:
        logger.exception("Error improving text")
        return text


async def generate_ebook_outline(client: LLMClient, description: str, chapter_count: int = 5) -> dict:
    prompt = (
        f'Generate an ebook outline based on the following description: "{description}".\n\n'
        "Please provide:\n"
        "1. A catchy title for the ebook\n"
        "2. A compelling description (2-3 sentences)\n"
        f"3. An outline with {chapter_count} chapters (title and brief description for each)\n\n"
        "Format the response as JSON with the following structure:\n"
        '{"title": "Ebook Title", "description": "Ebook description here", '
        '"chapters": [{"title": "Chapter 1 Title", "description": "Brief description of chapter content"}]}'
    )
    out = await client.complete_json(prompt)
    if not isinstance(out, dict) or "chapters" not in out:
        raise UpstreamError("Outline response is missing chapters")
    return out


async def generate_chapter_content(client: LLMClient, chapter_title: str, chapter_description: str, prompt: str) -> str:
    full = (
        f'Write the content for a chapter titled "{chapter_title}".\n'
        f"Chapter description: {chapter_description}\n\n"
        f"Additional instructions: {prompt}\n\n"
        "Use markdown headings, bold and lists where they help. Return only the chapter text."
    )
    return await client.complete(full)
