"""
LLM Analyzer – uses Groq (Llama 3.1) to analyze a GitHub repository and
answer free-form questions about it.
"""
import json
import logging
import re
from typing import Any, Dict, Optional

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_groq import ChatGroq
from pydantic import SecretStr
from tenacity import retry, stop_after_attempt, wait_exponential

from . import github_client as gh
from .config import settings

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a helpful AI assistant with access to GitHub through a Model Context "
    "Protocol server. When analyzing GitHub repositories, focus on: stars count, "
    "forks, open issues, main language, and recent activity."
)

DEFAULT_ANALYSIS_PROMPT = (
    "Please analyze this GitHub repository and provide key insights about:\n"
    "1. Repository popularity (stars, forks)\n"
    "2. Development activity (open issues, last update)\n"
    "3. Technical stack (main language, topics)\n"
    "4. Key metrics and statistics\n"
    "Please format the response in a clear, structured way."
)

README_EXCERPT_CHARS = 3000

ISSUES_PROMPT = (
    "Please summarize the key themes and patterns in these recent open issues. "
    "Focus on identifying common problems, feature requests, or bugs that users "
    "are reporting."
)
RECENT_ISSUES_COUNT = 5

# ── Prompt intent heuristics ──────────────────────────────────────────────
# Keyword matches only. They route obvious off-topic prompts to canned
# answers and are not a safety boundary.

_MODEL_PATTERNS = re.compile(
    r"\b(which|what)\s+(ai\s+)?(model|llm)\b|\bwho\s+(made|built|trained)\s+you\b|\bare\s+you\s+(gpt|claude|llama)\b",
    re.IGNORECASE,
)
_HARMFUL_PATTERNS = re.compile(
    r"\b(malware|ransomware|keylogger|exploit|steal\s+(credentials|passwords|tokens)|ddos|phishing)\b",
    re.IGNORECASE,
)
_INTEGRATION_PATTERNS = re.compile(
    r"\b(integrat\w*|configure|set\s*up|setup|connect)\b.*\b(cursor|ide|mcp|editor|claude)\b",
    re.IGNORECASE,
)

INTENT_MODEL = "model_question"
INTENT_HARMFUL = "harmful"
INTENT_INTEGRATION = "integration"
INTENT_ANALYSIS = "analysis"

_CANNED_RESPONSES = {
    INTENT_MODEL: (
        "This analysis is produced by a hosted language model behind the GitHub MCP "
        "Server. Ask about a repository's popularity, activity, stack or metrics."
    ),
    INTENT_HARMFUL: (
        "I can't help with that request. I can analyze a repository's popularity, "
        "activity, technical stack and key metrics instead."
    ),
    INTENT_INTEGRATION: (
        "To use this server from an AI assistant or IDE, point its MCP configuration "
        "at the /mcp endpoint. Clients can POST JSON-RPC 2.0 requests (initialize, "
        "tools/list, tools/call) or open an SSE stream with "
        "'Accept: text/event-stream' to receive the tool catalog."
    ),
}


def classify_prompt(prompt: Optional[str]) -> str:
    """Best-effort intent label for a user prompt."""
    if not prompt:
        return INTENT_ANALYSIS
    if _HARMFUL_PATTERNS.search(prompt):
        return INTENT_HARMFUL
    if _MODEL_PATTERNS.search(prompt):
        return INTENT_MODEL
    if _INTEGRATION_PATTERNS.search(prompt):
        return INTENT_INTEGRATION
    return INTENT_ANALYSIS


# ── LLM setup ─────────────────────────────────────────────────────────────


def _get_llm() -> ChatGroq:
    """Build a ChatGroq LLM instance."""
    if not settings.groq_api_key:
        raise RuntimeError("GROQ_API_KEY is not set.")
    return ChatGroq(
        model=settings.groq_model,
        temperature=0.3,
        api_key=SecretStr(settings.groq_api_key),
        max_retries=2,
    )


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)
def complete(prompt: str, context: Optional[Any] = None) -> str:
    """
    Run one chat completion.

    Args:
        prompt: The user's question or instruction.
        context: Optional data the model should ground its answer on; dicts
            and lists are sent as pretty-printed JSON.

    Returns:
        The model's text reply.
    """
    llm = _get_llm()

    messages = [SystemMessage(content=SYSTEM_PROMPT), HumanMessage(content=prompt)]
    if context is not None:
        context_text = context if isinstance(context, str) else json.dumps(context, indent=2)
        messages.append(HumanMessage(content=f"Repository data:\n\n{context_text}"))

    response = llm.invoke(messages)
    content = response.content if hasattr(response, "content") else str(response)
    text = content if isinstance(content, str) else str(content)
    logger.info(f"LLM completion returned {len(text)} chars")
    return text.strip()


# ── Public analysis ───────────────────────────────────────────────────────


def _readme_excerpt(owner: str, repo: str) -> Optional[str]:
    """README text for extra context; a missing README is not an error."""
    try:
        readme = gh.get_readme(owner, repo)
    except Exception as exc:
        logger.warning(f"README unavailable for {owner}/{repo}: {exc}")
        return None
    return readme["content"][:README_EXCERPT_CHARS]


def analyze_repository(owner: str, repo: str, prompt: Optional[str] = None) -> str:
    """
    Produce an LLM-written analysis of ``owner/repo``.

    Prompts classified as model questions, harmful requests or integration
    questions are answered with fixed text and never reach GitHub or the LLM.
    """
    intent = classify_prompt(prompt)
    if intent != INTENT_ANALYSIS:
        logger.info(f"Prompt for {owner}/{repo} classified as '{intent}', using canned reply")
        return _CANNED_RESPONSES[intent]

    context: Dict[str, Any] = {"repository": gh.get_repository(owner, repo)}
    readme = _readme_excerpt(owner, repo)
    if readme:
        context["readme_excerpt"] = readme

    question = DEFAULT_ANALYSIS_PROMPT
    if prompt and prompt.strip():
        question = f"{DEFAULT_ANALYSIS_PROMPT}\n\nFocus especially on: {prompt.strip()}"

    return complete(question, context)


def summarize_issues(owner: str, repo: str) -> str:
    """LLM summary of the most recent open issues of ``owner/repo``."""
    issues = gh.list_issues(owner, repo, state="open", per_page=RECENT_ISSUES_COUNT)
    if not issues["issues"]:
        return "No open issues."
    return complete(ISSUES_PROMPT, issues)


def analyze_repository_report(owner: str, repo: str, prompt: Optional[str] = None) -> Dict[str, Optional[str]]:
    """
    Two-pass report: a repository analysis, then a summary of recent open issues.

    Returns ``{"repositoryAnalysis": ..., "issuesAnalysis": ...}``. Canned
    replies fill ``repositoryAnalysis`` only and leave ``issuesAnalysis`` as
    ``None``; nothing is fetched from GitHub in that case.
    """
    analysis = analyze_repository(owner, repo, prompt)
    if classify_prompt(prompt) != INTENT_ANALYSIS:
        return {"repositoryAnalysis": analysis, "issuesAnalysis": None}

    logger.info(f"Summarizing open issues for {owner}/{repo}")
    return {"repositoryAnalysis": analysis, "issuesAnalysis": summarize_issues(owner, repo)}
