"""Prompt building for the app builder assistant."""

from typing import List, Optional


TEMPLATE_DESCRIPTIONS = {
    "vite-react": "a Vite + React + TypeScript single-page app styled with Tailwind CSS",
    "expo-react-native": "an Expo React Native mobile app written in TypeScript",
    "next-js": "a Next.js app using the App Router and TypeScript",
}


APP_BUILDER_SYSTEM_PROMPT = """You are an AI development assistant embedded in a browser-based app builder. The user describes what they want to build and you write the code.

Rules:
1. Put every file's code in its own fenced block and start the fence with the language (```tsx, ```css, ```sql ...)
2. Use SQLite syntax for database changes and put them in ```sql blocks
3. Keep explanations short; the code blocks are applied to the project automatically
4. Never wrap a file in more than one fenced block"""


def build_system_prompt(template: Optional[str] = None) -> str:
    """
    Build the system prompt, mentioning the project's starter template if known.

    Args:
        template: Template key such as "vite-react", or free text

    Returns:
        Complete system prompt for the model
    """
    if not template:
        return APP_BUILDER_SYSTEM_PROMPT
    description = TEMPLATE_DESCRIPTIONS.get(template, template)
    return f"{APP_BUILDER_SYSTEM_PROMPT}\n\nThe project is {description}."


def build_chat_messages(messages: List[dict], template: Optional[str] = None) -> List[dict]:
    return [{"role": "system", "content": build_system_prompt(template)}, *messages]
