"""Voice selection and spoken-text styling for Twilio <Say>."""
import re
from typing import Dict, Optional

from pydantic import BaseModel

from receptionist.services.persona.moods import Mood

DEFAULT_VOICE = "Polly.Amy-Neural"
DEFAULT_STYLE = "sarcastic"


class VoiceProfile(BaseModel):
    """A Polly neural voice."""

    voice: str
    accent: str
    description: str


class VoiceSelection(BaseModel):
    """Voice and style fixed for the lifetime of a call."""

    voice: str = DEFAULT_VOICE
    style: str = DEFAULT_STYLE


class SpokenResponse(BaseModel):
    """Text and prosody ready for a <Say> verb."""

    text: str
    voice: str
    rate: str = "115%"
    volume: str = "medium"


VOICE_PROFILES: Dict[str, VoiceProfile] = {
    "amy": VoiceProfile(
        voice="Polly.Amy-Neural",
        accent="British",
        description="Posh British accent, perfect for condescending remarks",
    ),
    "brian": VoiceProfile(
        voice="Polly.Brian-Neural",
        accent="British",
        description="British male, very proper and dismissive",
    ),
    "joanna": VoiceProfile(
        voice="Polly.Joanna-Neural",
        accent="American",
        description="Natural conversational American female",
    ),
    "matthew": VoiceProfile(
        voice="Polly.Matthew-Neural",
        accent="American",
        description="American male, good for announcements",
    ),
    "ruth": VoiceProfile(
        voice="Polly.Ruth-Neural",
        accent="American",
        description="Professional American female",
    ),
    "kendra": VoiceProfile(
        voice="Polly.Kendra-Neural",
        accent="American",
        description="Neutral American female",
    ),
    "olivia": VoiceProfile(
        voice="Polly.Olivia-Neural",
        accent="Australian",
        description="Australian female, naturally sarcastic",
    ),
}

# Mood name -> (voice profile key, style)
MOOD_VOICES: Dict[str, Dict[str, str]] = {
    "Existential Sunday Dread": {"voice": "brian", "style": "exhausted"},
    "Why-Am-I-Here Monday Blues": {"voice": "amy", "style": "dramatic"},
    "Passive Aggressive Tuesday": {"voice": "olivia", "style": "passive_aggressive"},
    "Overly Corporate Wednesday": {"voice": "ruth", "style": "condescending"},
    "Dramatic Sighing Thursday": {"voice": "amy", "style": "exhausted"},
    "Completely Checked Out Friday": {"voice": "kendra", "style": "bored"},
    "Too Cool for This Saturday": {"voice": "amy", "style": "condescending"},
}

# Written stage directions -> what the listener should hear instead
SOUND_EFFECT_PAUSES = [
    (r"\*DRAMATIC SIGH\*", "... ... ... ..."),
    (r"\*DEEP SIGH\*", "... ... ..."),
    (r"\*SIGH\*", "..."),
    (r"\*EYE ROLL\*", ""),
    (r"\*DRAMATIC PAUSE\*", "... ... ..."),
    (r"\*PAUSE\*", "..."),
    (r"\*TYPING\*", "... ..."),
    (r"\*PAPER SHUFFLE\*", "..."),
    (r"\*COFFEE SLURP\*", "..."),
]


def select_voice_for_call(mood: Mood) -> VoiceSelection:
    """Pick the voice and style a call keeps for its whole lifetime."""
    mapping = MOOD_VOICES.get(mood.name, {"voice": "amy", "style": DEFAULT_STYLE})
    profile = VOICE_PROFILES[mapping["voice"]]
    return VoiceSelection(voice=profile.voice, style=mapping["style"])


def voice_style_for(intent: str, current_style: str, turn_count: int) -> str:
    """Adjust the delivery style to what the caller is asking for."""
    if intent == "appointments":
        return "bored"
    if intent == "transferring":
        return "passive_aggressive"
    if turn_count > 5:
        return "exhausted"
    return current_style


def normalize_voice_name(voice: str) -> str:
    """'Polly.Amy-Neural' -> 'amy'."""
    return voice.replace("Polly.", "").replace("-Neural", "").lower()


def clean_spoken_text(text: str) -> str:
    """Replace sound effect stage directions with pauses and drop emphasis markers."""
    processed = text
    for pattern, replacement in SOUND_EFFECT_PAUSES:
        processed = re.sub(pattern, replacement, processed, flags=re.IGNORECASE)

    processed = re.sub(r"\*([^*]+)\*", r"\1", processed)
    processed = re.sub(r"\s+", " ", processed).strip()
    return re.sub(r"\.{4,}", "...", processed)


def enhance_response(
    text: str,
    style: str = DEFAULT_STYLE,
    voice: str = "amy",
    add_breathing: bool = True,
) -> SpokenResponse:
    """
    Turn raw response text into something Twilio can say in character.

    Args:
        text: Response text, possibly with *SIGH*-style markers
        style: Delivery style (sarcastic, condescending, dramatic, bored,
            passive_aggressive, overly_cheerful, exhausted)
        voice: Voice profile key used by styles that keep the call's voice
        add_breathing: Prefix a pause

    Returns:
        SpokenResponse with text, voice, rate and volume
    """
    processed = clean_spoken_text(text)
    if add_breathing:
        processed = "... " + processed

    own_voice = (VOICE_PROFILES.get(voice) or VOICE_PROFILES["amy"]).voice

    if style == "condescending":
        return SpokenResponse(text=processed, voice=VOICE_PROFILES["amy"].voice, volume="soft")
    if style == "dramatic":
        return SpokenResponse(text="... " + processed, voice=VOICE_PROFILES["ruth"].voice)
    if style == "bored":
        return SpokenResponse(text=processed, voice=VOICE_PROFILES["kendra"].voice, volume="soft")
    if style == "passive_aggressive":
        return SpokenResponse(
            text=processed.replace(".", "..."), voice=VOICE_PROFILES["olivia"].voice
        )
    if style == "overly_cheerful":
        return SpokenResponse(text=processed, voice=VOICE_PROFILES["joanna"].voice, volume="loud")
    if style == "exhausted":
        return SpokenResponse(text="... ... " + processed + " ...", voice=own_voice, volume="soft")
    return SpokenResponse(text=processed, voice=own_voice)


def goodbye(text: str) -> str:
    """Farewell delivery."""
    return text + "... ... Finally..."


# Deepgram Aura voices keyed by delivery style
AURA_VOICES: Dict[str, str] = {
    "british_female": "aura-2-thalia-en",
    "british_male": "aura-2-orion-en",
    "american_female": "aura-2-luna-en",
    "american_male": "aura-2-zeus-en",
    "australian_female": "aura-2-stella-en",
    "sarcastic": "aura-2-athena-en",
    "condescending": "aura-2-thalia-en",
    "bored": "aura-2-luna-en",
    "exhausted": "aura-2-hera-en",
    "dramatic": "aura-2-athena-en",
    "passive_aggressive": "aura-2-stella-en",
}


def aura_voice_for_style(style: Optional[str]) -> str:
    """Deepgram Aura model name for a delivery style."""
    return AURA_VOICES.get(style or DEFAULT_STYLE, AURA_VOICES[DEFAULT_STYLE])
