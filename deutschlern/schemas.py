"""
Structured JSON shapes the model is asked to produce.

Each shape is embedded verbatim in the matching prompt (see prompts.py);
the parser in models.py knows how to validate each one.
"""

ASSESSMENT_ITEM_SCHEMA = """
{
  "sentence": "German sentence with exactly one blank written as ___",
  "options": ["correct word", "plausible wrong word", "plausible wrong word"],
  "correctAnswer": "the correct word, copied exactly from options",
  "translation": "English translation of the complete sentence"
}
""".strip()

SPEAKING_ITEM_SCHEMA = """
{
  "sentence": "One German sentence to read aloud",
  "translation": "English translation"
}
""".strip()

LISTENING_ITEM_SCHEMA = """
{
  "script": "German audio script (2-3 simple sentences)",
  "translation": "English translation of the script",
  "question": "Comprehension question in German",
  "questionTranslation": "English translation of the question",
  "options": ["German option 1", "German option 2", "German option 3"],
  "optionsTranslations": ["English for option 1", "English for option 2", "English for option 3"],
  "correctAnswer": "the correct option, copied exactly from options"
}
""".strip()

VOCABULARY_CARD_SCHEMA = """
{
  "word": "German word (nouns with their article)",
  "translation": "English translation",
  "exampleSentence": "Simple German example sentence using the word",
  "exampleTranslation": "English translation of the example"
}
""".strip()

PRONUNCIATION_FEEDBACK_SCHEMA = """
{
  "overallComment": "Short encouraging summary in English",
  "score": 0-100 integer,
  "analyzedWords": [
    {"word": "word from the original sentence", "status": "correct" | "incorrect" | "mispronounced",
     "comment": "only for incorrect or mispronounced words"}
  ]
}
""".strip()

JSON_ONLY_SYSTEM_PROMPT = (
    "You are a helpful assistant that always responds in JSON format. "
    "Do not include markdown ```json tags or any other text outside the JSON object."
)

TEACHER_SYSTEM_PROMPT = "You are an expert German language teacher."
