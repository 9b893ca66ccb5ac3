"""Prompt templates for post generation."""

from typing import List, Optional

SYSTEM_INSTRUCTION = (
    "You are a content generator for a Telegram channel. "
    "Return only the finished post text, without explanations, comments or Markdown formatting."
)

CUSTOM_CATEGORY = "custom"

CATEGORY_LABELS = {
    "news": "News",
    "tech": "Technology",
    "fantasy": "Fantasy",
    "business": "Business",
    "lifestyle": "Lifestyle",
    "science": "Science",
    "education": "Education",
    "health": "Health",
    "fitness": "Fitness",
    "food": "Food and cooking",
    "travel": "Travel",
    "motivation": "Motivation",
    "entertainment": "Entertainment",
    "gaming": "Gaming",
    "crypto": "Cryptocurrency",
    "finance": "Finance",
    "psychology": "Psychology",
    "art": "Art",
    "music": "Music",
    "sport": "Sport",
}


def category_label(category: Optional[str]) -> str:
    """Human readable label for a category key; unknown keys pass through."""
    if not category:
        return "general topic"
    return CATEGORY_LABELS.get(category.lower(), category)


def requirements_block(language: str, generate_tags: bool) -> str:
    """
    Fixed requirements appended to every generation prompt.

    Args:
        language: Target language of the post (e.g. "Ukrainian")
        generate_tags: Whether to ask for 2-4 hashtags at the end

    Returns:
        Requirements section
    """
    lines = [
        "Requirements:",
        "- Length 300-500 characters",
        "- Natural, informal style",
        "- A few fitting emoji",
    ]
    if generate_tags:
        lines.append("- 2-4 relevant hashtags at the end")
    lines.append(f"- Write in {language}")
    lines.append("- Return ONLY the post text without any additional explanations.")
    return "\n".join(lines)


def get_custom_prompt(custom_prompt: str, language: str, generate_tags: bool) -> str:
    return f"{custom_prompt.strip()}\n\n{requirements_block(language, generate_tags)}"


def get_category_prompt(label: str, keywords: Optional[List[str]], language: str, generate_tags: bool) -> str:
    """Default template for a category label with optional keywords."""
    keyword_str = f" Keywords: {', '.join(keywords)}" if keywords else ""
    return (
        f'Create a short but meaningful post for a Telegram channel on the topic "{label}".{keyword_str}\n\n'
        f"{requirements_block(language, generate_tags)}"
    )


def get_image_prompt(label: str) -> str:
    return (
        f"Create a bright, eye-catching image for a Telegram post on the topic: {label or 'general topic'}. "
        "The image should be visually appealing and match the content."
    )
