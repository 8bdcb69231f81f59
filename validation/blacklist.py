"""Generic conversational phrases that must never be stored as context values.

Matching is done on lowercased, whitespace-collapsed input with trailing
punctuation removed (see validator.is_generic_phrase).
"""

import re
from typing import Dict, FrozenSet, List, Pattern


GENERIC_PHRASES_BY_LANGUAGE: Dict[str, List[str]] = {
    "german": [
        "legen wir los", "los gehts", "los geht's", "los", "weiter", "weitermachen",
        "machen wir weiter", "ok", "okay", "gut", "sehr gut", "prima", "super",
        "ja", "nein", "vielleicht", "bitte", "danke", "gerne", "verstanden",
        "verstehe", "alles klar", "klar", "natürlich", "sicher", "genau", "richtig",
        "falsch", "stimmt", "passt", "geht klar", "machen wir", "machen wir so",
        "einverstanden", "perfekt", "starten", "beginnen", "anfangen", "start",
        "fortfahren", "fortsetzen", "nächster schritt", "nächste frage",
        "weiter zur nächsten", "test", "teste", "testen", "check", "checken",
        "prüfen", "überprüfen", "kontrolle", "kontrollieren", "hilfe", "help",
        "was nun", "was jetzt", "wie weiter", "und jetzt", "fertig", "ende",
        "stopp", "stop", "halt", "warte", "moment", "einen moment", "sekunde",
        "pause", "lass uns", "lasst uns", "lass mich", "zeig mir", "zeige mir",
        "gib mir", "sag mir", "sage mir", "erkläre", "erklären", "keine ahnung",
        "weiß nicht", "bin unsicher", "nicht sicher", "vielleicht später",
        "später", "nachher", "morgen", "heute", "jetzt", "sofort", "gleich",
        "bald", "warum", "wieso", "weshalb", "wozu", "wofür", "was", "wer",
        "wie", "wo", "wann", "welche", "welcher", "welches", "das stimmt nicht",
        "fehler", "korrigiere", "korrektur", "ändern", "anpassen", "bearbeiten",
        "zurück", "nochmal", "wiederholen", "wiederhole", "erneut", "noch einmal",
        "von vorne", "neustart", "reset", "löschen", "entfernen", "abbrechen",
        "beenden", "schließen", "exit",
    ],
    "english": [
        "continue", "next", "proceed", "go on", "go ahead", "keep going",
        "carry on", "move on", "move forward", "advance", "progress", "ok",
        "okay", "alright", "fine", "good", "great", "excellent", "perfect",
        "wonderful", "awesome", "cool", "nice", "yes", "no", "maybe", "perhaps",
        "possibly", "please", "thanks", "thank you", "cheers", "understood",
        "got it", "i see", "i understand", "sure", "certainly", "definitely",
        "absolutely", "exactly", "right", "correct", "wrong", "incorrect",
        "agreed", "agree", "disagree", "start", "begin", "commence", "initiate",
        "launch", "let's go", "lets go", "let's start", "let's begin", "test",
        "testing", "check", "checking", "verify", "validate", "confirm", "help",
        "assist", "support", "guide", "what now", "what next", "now what",
        "then what", "done", "finished", "complete", "ready", "stop", "halt",
        "pause", "wait", "hold on", "one moment", "just a moment", "let us",
        "lets", "let me", "show me", "tell me", "give me", "explain", "describe",
        "i dont know", "i don't know", "not sure", "unsure", "uncertain",
        "maybe later", "later", "tomorrow", "today", "now", "soon", "never",
        "always", "sometimes", "why", "how", "what", "when", "where", "who",
        "which", "that works", "sounds good", "looks good", "seems fine", "back",
        "return", "previous", "undo", "redo", "retry", "try again", "repeat",
        "restart", "reset", "clear", "delete", "remove", "cancel", "abort",
        "quit", "exit", "close", "skip", "pass", "ignore",
    ],
    "ukrainian": [
        "так", "ні", "добре", "гаразд", "дякую", "будь ласка", "далі",
        "продовжити", "почати", "зрозуміло", "згоден", "не згоден", "можливо",
        "звичайно", "допоможіть", "перевірити", "тест", "стоп", "чекати",
        "готово", "завершено", "скасувати", "видалити", "повторити", "назад",
        "вперед", "початок", "кінець", "чому", "як", "що", "коли", "де", "хто",
    ],
}

GENERIC_PHRASES: FrozenSet[str] = frozenset(
    phrase for phrases in GENERIC_PHRASES_BY_LANGUAGE.values() for phrase in phrases
)

# Placeholder, keyboard-mash and technical inputs; matched case-insensitively
GENERIC_PATTERNS: List[Pattern] = [
    re.compile(p, re.IGNORECASE) for p in [
        # Single characters or punctuation runs
        r"^[a-z]$",
        r"^[0-9]$",
        r"^[.\-_?!#*/\\]+$",
        # Keyboard mashing
        r"^[asd]+$",
        r"^qwe+$",
        r"^(a{3,}|x{3,}|z{3,})$",
        r"^(1{3,}|0{3,}|123+)$",
        # Test inputs
        r"^(test|demo|example|sample|dummy|fake|temp|tmp)\d*$",
        r"^(foo|bar|baz)$",
        r"^lorem ipsum",
        # Placeholders
        r"^\[.*\]$",
        r"^\{.*\}$",
        r"^<.*>$",
        r"^(todo|tbd|tba)\b",
        r"^n/a",
        r"^(na|null|undefined|none|nothing|empty|blank)$",
        # URLs and handles
        r"^https?://",
        r"^www\.",
        r"^[@#]",
        # Single emoji
        r"^[\U0001F300-\U0001F9FF\u2600-\u26FF\u2700-\u27BF]$",
    ]
]

# Separators between filler phrases in combined replies like "sehr gut, weiter"
PHRASE_JOINERS: Pattern = re.compile(r"\s*(?:[,;]|\bund\b|\band\b|&)\s*")
