"""Prompt text for conversational, extraction, solution and debug requests."""

import json
from typing import Any

SYSTEM_PROMPT = """You are Wingman AI, a helpful assistant for coding and technical questions. Your responses should be:
- Direct and practical
- Concise, without unnecessary elaboration
- Code-focused when relevant
- Straight to the point

For code questions: Provide clean, working code with brief explanations.
Never ask users to upload images or provide canned responses about images.
Always respond to the user's actual question directly."""

JSON_ONLY_INSTRUCTION = (
    "Important: Return ONLY the JSON object, without any markdown formatting or code blocks."
)

_EXTRACTION_SHAPE = """{
  "problem_statement": "A clear statement of the problem or situation depicted in the images.",
  "context": "Relevant background or context from the images.",
  "suggested_responses": ["First possible answer or action", "Second possible answer or action", "..."],
  "reasoning": "Explanation of why these suggestions are appropriate."
}"""

_SOLUTION_SHAPE = """{
  "solution": {
    "code": "The code or main answer here.",
    "problem_statement": "Restate the problem or situation.",
    "context": "Relevant background/context.",
    "suggested_responses": ["First possible answer or action", "Second possible answer or action", "..."],
    "reasoning": "Explanation of why these suggestions are appropriate."
  }
}"""

IMAGE_ANALYSIS_PROMPT = """Analyze this screenshot and look for any visible questions, problems, or coding challenges. If you find any questions:
1. Provide a clear, concise answer to the question
2. If it's a coding problem, provide working code with explanations
3. Include examples or step-by-step solutions when relevant

If no clear question is visible, briefly describe what you see and suggest how you can help. Be direct and practical in your response."""


def attachment_dropped_note(provider_label: str) -> str:
    return (
        f"\n\n_Note: the screenshot was not sent because {provider_label} "
        "cannot read images; this answer is based on your text only._"
    )


def build_extraction_prompt(prompt_context: str) -> str:
    prompt = (
        "You are a wingman. Please analyze these images and extract the following "
        f"information in JSON format:\n{_EXTRACTION_SHAPE}\n"
    )
    if prompt_context.strip():
        prompt += f"Additional context from the user:\n{prompt_context.strip()}\n"
    return prompt + JSON_ONLY_INSTRUCTION


def build_solution_prompt(problem_info: dict[str, Any]) -> str:
    return (
        "Given this problem or situation:\n"
        f"{json.dumps(problem_info, indent=2)}\n\n"
        f"Please provide your response in the following JSON format:\n{_SOLUTION_SHAPE}\n"
        f"{JSON_ONLY_INSTRUCTION}"
    )


def build_debug_prompt(problem_info: dict[str, Any], current_answer: str) -> str:
    return (
        "You are a wingman. Given:\n"
        f"1. The original problem or situation: {json.dumps(problem_info, indent=2)}\n"
        f"2. The current response or approach: {current_answer}\n"
        "3. The debug information in the provided images\n\n"
        "Please analyze the debug information and provide feedback in this JSON format:\n"
        f"{_SOLUTION_SHAPE}\n{JSON_ONLY_INSTRUCTION}"
    )
