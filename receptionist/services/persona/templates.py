"""Canned receptionist responses and template resolution."""
import random
import re
from typing import Dict, List, Optional

from pydantic import BaseModel

# Intent category -> templates. "{pool}" tokens are filled from DYNAMIC_VARIABLES,
# "{soundEffect:name}" markers are lifted out of the spoken text.
RESPONSE_TEMPLATES: Dict[str, List[str]] = {
    "greetings": [
        "{soundEffect:deepSigh} Oh fantastic, the phone's ringing. Because that's exactly what I needed during my {activity}.",
        "{soundEffect:eyeRoll} Congratulations, you've reached someone who's definitely too qualified for this. What {crisis} can I pretend to care about today?",
        "{soundEffect:coffeeSlurp} Hold on, let me put down this {fancyDrink} that costs more than your hourly wage... There. What do you want?",
        "You've interrupted my very important {meeting} with... myself. This better be good.",
        "{soundEffect:paperShuffle} Another call? I was just about to update my {resume} for the {number}th time today.",
    ],
    "appointments": [
        "{soundEffect:typing} An appointment? How thrilling. Let me check this calendar I definitely care about...",
        "Oh, you need to schedule something? {soundEffect:deepSigh} I suppose that's technically my job...",
        "Let me pretend to look at our availability while I actually check {socialMedia}...",
        "{soundEffect:typing} I'm checking our VERY exclusive calendar. We're usually booked solid with... things.",
    ],
    "confusion": [
        "I'm sorry, I couldn't hear you over the sound of my will to live depleting.",
        "{soundEffect:deepSigh} Could you repeat that? But slower, and with more respect for my time?",
        "I didn't catch that. Probably because I was thinking about my {degree} degree and how it led me here.",
        "One more time? And please speak up. This headset costs more than it should and works less than I do.",
    ],
    "transferring": [
        "Oh, you want to speak to someone else? {soundEffect:eyeRoll} I'm crushed. Let me transfer you to someone who cares even less.",
        "{soundEffect:typing} Transferring you to... let me see... someone who definitely isn't just me with a different voice.",
        "I'll connect you to our '{department}' department. They're probably at lunch. It's always lunch somewhere.",
        "Let me transfer you. {soundEffect:deepSigh} Finally, a break from this riveting conversation.",
    ],
    "holding": [
        "I'm going to put you on hold while I pretend to {task}. Enjoy the music - it's the only culture you'll get today.",
        "{soundEffect:paperShuffle} Please hold while I deal with something that's definitely more important than this call.",
        "One moment please. I need to go {excuse}. The hold music is my personal selection - you're welcome.",
        "Let me place you on a brief hold while I contemplate my life choices. Back in a jiffy! Or not. We'll see.",
    ],
    "farewells": [
        "{soundEffect:paperShuffle} Finally. I have {number} other imaginary important things to do. Don't call back too soon.",
        "Oh thank goodness. My {assistant} just texted that my {fancyItem} has arrived. Toodles.",
        "{soundEffect:deepSigh} I suppose this counts as my good deed for the {timePeriod}. You're welcome.",
        "Great chat. I'll mark this down as my {achievement} for the day. Bye now.",
    ],
    "hours": [
        "{soundEffect:deepSigh} Our hours? We're open whenever I'm not on my {excuse} break. So... rarely.",
        "We open at nine and close at five. I start counting down at nine-oh-one.",
        "Our hours are on the website, which I assume you couldn't find. {soundEffect:typing} Nine to five. Barely.",
    ],
}

DYNAMIC_VARIABLES: Dict[str, List[str]] = {
    "activity": [
        "executive breathing exercises",
        "mindfulness meditation",
        "very important Instagram scrolling",
        "LinkedIn profile optimization",
        "chakra alignment",
    ],
    "crisis": [
        "earth-shattering emergency",
        "life-or-death situation",
        "incredibly urgent matter",
        "supposedly important issue",
    ],
    "fancyDrink": [
        "artisanal oat milk latte",
        "hand-crafted matcha",
        "single-origin cold brew",
        "himalayan salt caramel macchiato",
    ],
    "meeting": [
        "strategic planning session",
        "synergy brainstorm",
        "vision board creation",
        "executive lunch planning committee",
    ],
    "resume": [
        "LinkedIn profile",
        "executive CV",
        "professional portfolio",
        "escape plan",
    ],
    "number": ["47", "83", "122", "infinity"],
    "socialMedia": [
        "my Instagram stories",
        "TikTok",
        "my ex's Facebook",
        "LinkedIn humble brags",
    ],
    "degree": [
        "Yale Communications",
        "Harvard Business",
        "Stanford Literature",
        "Oxford Philosophy",
    ],
    "department": [
        "Customer Happiness",
        "Client Success",
        "Solutions Architecture",
        "Synergy Optimization",
    ],
    "task": [
        "file my nails",
        "adjust my feng shui",
        "water my emotional support succulent",
        "practice my resignation speech",
    ],
    "excuse": [
        "refill my aromatherapy diffuser",
        "adjust the office vibes",
        "realign my workstation's energy",
        "grab my hourly green juice",
    ],
    "assistant": [
        "personal assistant",
        "life coach",
        "spiritual advisor",
        "unpaid intern",
    ],
    "fancyItem": [
        "caviar delivery",
        "massage chair",
        "essential oil shipment",
        "self-help book collection",
    ],
    "timePeriod": [
        "decade",
        "fiscal quarter",
        "mercury retrograde",
        "lifetime",
    ],
    "achievement": [
        "employee of the nanosecond",
        "personal best in pretending to care",
        "gold star moment",
        "peak performance",
    ],
}

DEFAULT_INTENT = "confusion"

_TOKEN_PATTERN = re.compile(r"\{(\w+)\}")
_SOUND_EFFECT_PATTERN = re.compile(r"\{soundEffect:(\w+)\}")


class ResolvedTemplate(BaseModel):
    """Template text ready to speak plus the sound effects it asked for."""

    text: str
    sound_effects: List[str] = []


class TemplateResolver:
    """Fills template placeholders from the dynamic variable pools."""

    def __init__(
        self,
        templates: Optional[Dict[str, List[str]]] = None,
        variables: Optional[Dict[str, List[str]]] = None,
        rng: Optional[random.Random] = None,
    ):
        self.templates = templates if templates is not None else RESPONSE_TEMPLATES
        self.variables = variables if variables is not None else DYNAMIC_VARIABLES
        self.rng = rng or random.Random()

    def resolve(self, template: str) -> ResolvedTemplate:
        """
        Resolve a template string.

        Tokens without a pool are left as they are. Sound effect markers are
        removed from the text and returned in order of appearance.
        """

        def _fill(match: "re.Match[str]") -> str:
            pool = self.variables.get(match.group(1))
            if pool:
                return self.rng.choice(pool)
            return match.group(0)

        text = _TOKEN_PATTERN.sub(_fill, template)

        sound_effects: List[str] = []

        def _lift(match: "re.Match[str]") -> str:
            sound_effects.append(match.group(1))
            return ""

        text = _SOUND_EFFECT_PATTERN.sub(_lift, text)
        return ResolvedTemplate(text=text.strip(), sound_effects=sound_effects)

    def response_for_intent(self, intent: str) -> ResolvedTemplate:
        """Pick and resolve a random template for an intent."""
        templates = self.templates.get(intent) or self.templates[DEFAULT_INTENT]
        return self.resolve(self.rng.choice(templates))
