"""
Prompt and request-payload builders.

Two kinds of request go through the stream consumer:
- Tutor chat: a running conversation, optionally with an image attached
  to the newest user turn
- Content writer: a single prompt built from a topic, a content type, a
  tone and a target length
"""

from typing import Any, Dict, List, Optional

from .config import ClientConfig

TUTOR_SYSTEM_PROMPT = (
    "You are an AI tutor assistant helping students with their homework and "
    "studies. Provide helpful, educational responses with clear explanations "
    "and examples that students can easily understand. Use proper markdown "
    "formatting for better readability."
)

FALLBACK_ANSWER = "I apologize, but I could not generate a response. Please try again."


# ============================================================================
# Chat
# ============================================================================

def build_user_content(message: str, image_url: Optional[str] = None) -> Any:
    """User turn content: plain text, or text plus image parts."""
    if not image_url:
        return message
    return [
        {"type": "image_url", "image_url": {"url": image_url}},
        {"type": "text", "text": message},
    ]


def build_chat_messages(history: List[Dict[str, Any]], message: str,
                        image_url: Optional[str] = None,
                        system_prompt: Optional[str] = TUTOR_SYSTEM_PROMPT) -> List[Dict[str, Any]]:
    """Assemble the message list for one request.

    Args:
        history: Earlier turns, oldest first, as role/content dicts
        message: The new user message
        image_url: Optional image attached to the new message
        system_prompt: Prepended as a system turn unless None

    Returns:
        List[Dict[str, Any]]: OpenAI-compatible ``messages`` array
    """
    messages: List[Dict[str, Any]] = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    messages.extend(dict(turn) for turn in history)
    messages.append({"role": "user", "content": build_user_content(message, image_url)})
    return messages


def build_payload(config: ClientConfig, messages: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Request body for a streaming chat completion."""
    payload: Dict[str, Any] = {
        "messages": messages,
        "temperature": config.generation.temperature,
        "max_tokens": config.generation.max_tokens,
        "stream": True,
    }
    if config.generation.model:
        payload["model"] = config.generation.model
    return payload


# ============================================================================
# Content writer
# ============================================================================

CONTENT_TYPES = {
    'essay': 'Essay',
    'article': 'Article',
    'blog': 'Blog Post',
    'letter': 'Letter',
    'email': 'Email',
    'report': 'Report',
    'story': 'Story',
    'social': 'Social Media',
    'marketing': 'Marketing Copy',
    'business': 'Business Proposal',
}

TONES = {
    'professional': 'Professional',
    'casual': 'Casual',
    'friendly': 'Friendly',
    'formal': 'Formal',
    'creative': 'Creative',
    'persuasive': 'Persuasive',
}

WORD_COUNTS = (250, 500, 750, 1000, 1500)

DEFAULT_TONE = 'professional'
DEFAULT_WORD_COUNT = 500
SOCIAL_WORD_LIMIT = 100

FORMATTING_INSTRUCTIONS = (
    "Format your response in clean, readable text. Do not use markdown "
    "formatting symbols like ** ## or similar. Use proper paragraphs, spacing, "
    "and structure but avoid raw markdown syntax."
)

WRITER_SYSTEM_PROMPTS = {
    'article': "You are a professional article writer. Create well-structured, informative, "
               "and engaging articles with proper headings, subheadings, and bullet points "
               "where appropriate.",
    'email': "You are an email writing assistant. Create clear, concise, and professional "
             "emails with proper subject lines, greetings, body content, and closings.",
    'blog': "You are a blog post writer. Create engaging blog posts with catchy titles, "
            "compelling introductions, well-structured main points with headings, and "
            "strong conclusions with calls to action.",
    'social': "You are a social media content creator. Create concise, engaging, and "
              "shareable social media posts with clear key points and relevant hashtags.",
    'marketing': "You are a marketing copywriter. Create persuasive marketing copy with "
                 "compelling headlines, clear benefits, features, testimonials, and strong "
                 "calls to action.",
}
DEFAULT_WRITER_SYSTEM_PROMPT = (
    "You are a professional content writer. Create high-quality content that is "
    "well-structured and engaging."
)

# Placeholders: tone, topic, words
_TYPE_TEMPLATES = {
    'essay': ("Write a {tone} essay about \"{topic}\". The essay should be approximately "
              "{words} words. Include an introduction, body paragraphs with clear "
              "arguments, and a conclusion."),
    'article': ("Write a {tone} article about \"{topic}\". The article should be "
                "approximately {words} words. Include clear sections with proper "
                "organization."),
    'blog': ("Write a {tone} blog post about \"{topic}\". The blog post should be "
             "approximately {words} words. Include a catchy title, introduction, main "
             "points, and a conclusion."),
    'letter': ("Write a {tone} letter about \"{topic}\". The letter should be approximately "
               "{words} words. Include proper formatting with date, address, greeting, "
               "body, and closing."),
    'email': ("Write a {tone} email about \"{topic}\". The email should be approximately "
              "{words} words. Include a subject line, greeting, body, and closing."),
    'report': ("Write a {tone} report about \"{topic}\". The report should be approximately "
               "{words} words. Include an executive summary, introduction, findings, "
               "analysis, and recommendations."),
    'story': ("Write a {tone} story about \"{topic}\". The story should be approximately "
              "{words} words. Include characters, setting, plot, and narrative arc."),
    'social': ("Create a {tone} social media post about \"{topic}\". Keep it concise but "
               "aim for about {words} words. Include relevant hashtags."),
    'marketing': ("Create {tone} marketing copy for \"{topic}\". The copy should be "
                  "approximately {words} words. Include a compelling headline, key "
                  "benefits, features, testimonials, and a strong call to action."),
    'business': ("Write a {tone} business proposal about \"{topic}\". The proposal should be "
                 "approximately {words} words. Include an executive summary, problem "
                 "statement, proposed solution, benefits, costs, and implementation plan."),
}
_DEFAULT_TEMPLATE = "Write {tone} content about \"{topic}\" in approximately {words} words."


def build_content_prompt(topic: str, content_type: str,
                         tone: str = DEFAULT_TONE,
                         word_count: int = DEFAULT_WORD_COUNT) -> str:
    """User prompt for the content writer.

    Unknown tones fall back to professional and unsupported word counts
    to 500. Social posts are capped at 100 words.
    """
    tone_name = TONES.get(tone, TONES[DEFAULT_TONE]).lower()
    words = word_count if word_count in WORD_COUNTS else DEFAULT_WORD_COUNT
    if content_type == 'social':
        words = min(words, SOCIAL_WORD_LIMIT)

    template = _TYPE_TEMPLATES.get(content_type, _DEFAULT_TEMPLATE)
    prompt = template.format(tone=tone_name, topic=topic, words=words)
    return f"{prompt} {FORMATTING_INSTRUCTIONS}"


def writer_system_prompt(content_type: str) -> str:
    """System prompt for a content writer request of ``content_type``."""
    system_prompt = WRITER_SYSTEM_PROMPTS.get(content_type, DEFAULT_WRITER_SYSTEM_PROMPT)
    return f"{system_prompt} {FORMATTING_INSTRUCTIONS}"


# ============================================================================
# Quick prompts
# ============================================================================

QUICK_PROMPTS = {
    'summary': 'Write a concise summary about ',
    'explain': 'Explain in simple terms what is ',
    'compare': 'Compare and contrast between ',
    'steps': 'Create a step-by-step guide for ',
}


def expand_quick_prompt(name: str, subject: str) -> str:
    """``expand_quick_prompt('explain', 'entropy')`` -> 'Explain in simple terms what is entropy'"""
    try:
        prefix = QUICK_PROMPTS[name]
    except KeyError:
        raise ValueError(f"Unknown quick prompt {name!r}; choose from {sorted(QUICK_PROMPTS)}") from None
    return f"{prefix}{subject}"
