"""
Prompt templates, one per kind of generated content.

Every generation prompt ends with the history fragment from
HistoryCache.prompt_fragment() so the model avoids repeating itself.
"""

from typing import Dict, List

from .models import Skill
from .schemas import (
    ASSESSMENT_ITEM_SCHEMA,
    JSON_ONLY_SYSTEM_PROMPT,
    LISTENING_ITEM_SCHEMA,
    PRONUNCIATION_FEEDBACK_SCHEMA,
    SPEAKING_ITEM_SCHEMA,
    TEACHER_SYSTEM_PROMPT,
    VOCABULARY_CARD_SCHEMA,
)

Message = Dict[str, str]
TRANSLATION_TARGETS = ("English", "Tamil")


def teacher_messages(prompt: str) -> List[Message]:
    return [
        {"role": "system", "content": TEACHER_SYSTEM_PROMPT},
        {"role": "user", "content": prompt},
    ]


def json_messages(prompt: str) -> List[Message]:
    # response_format is not sent: many OpenRouter models reject it, so the
    # system prompt alone asks for bare JSON
    return [
        {"role": "system", "content": JSON_ONLY_SYSTEM_PROMPT},
        {"role": "user", "content": prompt},
    ]


def user_messages(prompt: str) -> List[Message]:
    return [{"role": "user", "content": prompt}]


def markdown_lesson_prompt(level_id: str, skill: Skill, history_fragment: str) -> str:
    base = (
        f"As an expert German language teacher, create a simple and engaging exercise for a "
        f"learner at the {level_id} level focusing on the skill of **{skill.value}**. "
        f"Answer in Markdown and make it different every time."
    )
    if skill == Skill.READING:
        body = (
            " Write a short German paragraph (3-5 sentences) about an everyday topic such as "
            "daily routines, hobbies or family. Then list 5 key vocabulary words from the text "
            "with English and Tamil translations. Use the headings \"Paragraph\" and \"Vocabulary\"."
        )
    elif skill == Skill.WRITING:
        body = (
            " Give a simple German writing prompt asking the learner to write 2-3 sentences about "
            "a personal topic. Add 3-4 useful German vocabulary words with English and Tamil "
            "translations they could use in their answer."
        )
    else:
        raise ValueError(f"{skill.value} is not a markdown skill")
    return f"{base}{body} {history_fragment}"


def assessment_prompt(level_id: str, history_fragment: str) -> str:
    return (
        f"As an expert German language teacher, create one **unique** fill-in-the-blank "
        f"assessment question for a learner at the {level_id} level. The sentence has exactly "
        f"one blank written as '___'. Give three options: the correct word and two plausible "
        f"wrong words.\n\nReturn ONLY a JSON object with this structure:\n"
        f"{ASSESSMENT_ITEM_SCHEMA}\n\n{history_fragment}"
    )


def speaking_prompt(level_id: str, history_fragment: str) -> str:
    return (
        f"As a German language teacher, create one simple German sentence for a learner at the "
        f"{level_id} level to practice speaking, with its English translation.\n\n"
        f"Return ONLY a JSON object with this structure:\n{SPEAKING_ITEM_SCHEMA}\n\n{history_fragment}"
    )


def listening_prompt(level_id: str, history_fragment: str) -> str:
    return (
        f"As a German language teacher, create a listening exercise for a learner at the "
        f"{level_id} level. Everything the learner hears or answers is in German; English "
        f"translations are included for review. The question and its three options are in "
        f"German, exactly one option is correct, and optionsTranslations is a parallel array "
        f"with one English translation per option.\n\n"
        f"Return ONLY a JSON object with this structure:\n{LISTENING_ITEM_SCHEMA}\n\n"
        f"Base the scenario on a random, uncommon topic to keep it fresh. {history_fragment}"
    )


def vocabulary_prompt(level_id: str, category: str, history_fragment: str) -> str:
    return (
        f"Generate a German vocabulary flashcard for a learner at the {level_id} level. "
        f"The category is \"{category}\". Pick a word suited to this level that is not one of "
        f"the most common words.\n\nReturn ONLY a JSON object with this structure:\n"
        f"{VOCABULARY_CARD_SCHEMA}\n\n{history_fragment}"
    )


def pronunciation_prompt(original_text: str, user_transcript: str) -> str:
    return (
        f"As a German pronunciation coach, analyze the learner's speech word by word.\n"
        f"Original sentence: \"{original_text}\"\n"
        f"Learner's transcript: \"{user_transcript}\"\n\n"
        f"Each entry in analyzedWords is a word from the ORIGINAL sentence.\n"
        f"Return ONLY a JSON object with this structure:\n{PRONUNCIATION_FEEDBACK_SCHEMA}"
    )


def translation_prompt(text: str, target_language: str) -> str:
    return (
        f"Translate the following German text to {target_language}. Reply with the translation "
        f"only, without explanations or introductions. German text: \"{text}\""
    )


def assistant_prompt(query: str, target_language: str) -> str:
    return (
        f"You are a friendly German learning assistant. Answer the learner's question about a "
        f"German word or phrase in {target_language}.\n\n"
        f"Rules:\n"
        f"1. Find the German term the learner is asking about.\n"
        f"2. Give its direct translation.\n"
        f"3. Give one simple German example sentence using it, then its {target_language} translation.\n"
        f"4. Be concise, no filler.\n"
        f"5. Do not use asterisks, markdown or other formatting.\n\n"
        f"Example (English): \"'Guten Morgen' means 'Good morning'. For example, 'Guten Morgen, "
        f"wie geht's?' means 'Good morning, how are you?'.\"\n\n"
        f"Learner question: \"{query}\""
    )
