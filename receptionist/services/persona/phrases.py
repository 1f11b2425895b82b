"""Fixed receptionist phrases: greetings, interruptions and hold music."""
import random
from datetime import datetime
from typing import List, Optional

from receptionist.services.persona.moods import get_time_greeting

INTERRUPTIONS = [
    "... Actually, hold that thought. My assistant just brought me my hourly kombucha.",
    "... Oh wait, I just remembered I have a very important... thing. But continue.",
    "Sorry, I was just checking my stock portfolio. What were you saying?",
    "One second, I need to update my Instagram story about how hard I'm working...",
]

HOLD_MUSIC_URLS = [
    "https://example.com/hold-music-1.mp3",
    "https://example.com/hold-music-2.mp3",
    "https://example.com/hold-music-3.mp3",
]

HOLD_START = "... You know what? I need to put you on hold. This conversation is exhausting me."
HOLD_END = "... ... ... I'm back. That was the best 30 seconds of my day. Now, where were we?"
FOLLOW_UP = "... Anything else I can pretend to help you with?"
TECHNICAL_DIFFICULTIES = (
    "Technical difficulties. Apparently even the phone system finds me exhausting. "
    "Call back later... or don't."
)
GATHER_APOLOGY = "... I'm sorry, something broke. Probably my spirit. Could you say that again?"
TEST_CALL = "... Oh wonderful ... another test call ... This is exactly what I needed today."
AI_APOLOGY = (
    "*DEEP SIGH* The AI is having a moment. Just like me on Mondays. "
    "Can you try again? Or better yet, don't."
)


def get_greetings(now: Optional[datetime] = None) -> List[str]:
    """Get every opening line, with the time-of-day greeting filled in."""
    time_greeting = get_time_greeting(now)
    return [
        f"{time_greeting}, thank you for calling... uh... this place. I'm your exceptionally motivated receptionist. How may I direct your call into the void?",
        "Hello, you've reached the front desk of... somewhere important, I'm sure. This is your dedicated receptionist speaking. What crisis can I help you with today?",
        f"{time_greeting}, thank you for calling. I'm your receptionist, currently questioning all my life choices. How may I assist you?",
        "Welcome to our establishment. I'm the receptionist, and yes, I'm a real person, unfortunately. How can I help you today?",
        "Hello, you've reached the reception desk. I'm here, against my better judgment. What do you need?",
        "Thank you for calling. This is reception, where enthusiasm comes to die. How may I direct your call?",
        f"{time_greeting}, you've reached... whatever this company is called. I'm your receptionist, tragically. How can I pretend to help you?",
        "Hello, front desk speaking. I'm your Yale-educated receptionist, making excellent use of my degree. What can I do for you?",
        "Thank you for calling our prestigious establishment. I'm the receptionist, living the dream... the nightmare, actually. How may I assist?",
        "Reception desk, this is your overqualified assistant speaking. I was just updating my resume, but I suppose I can help. What do you need?",
    ]


def get_random_greeting(
    now: Optional[datetime] = None, rng: Optional[random.Random] = None
) -> str:
    """Pick an opening line."""
    return (rng or random).choice(get_greetings(now))


def get_random_interruption(rng: Optional[random.Random] = None) -> str:
    """Pick a mid-conversation interruption."""
    return (rng or random).choice(INTERRUPTIONS)


def should_interrupt(
    turn_count: int, probability: float = 0.15, rng: Optional[random.Random] = None
) -> bool:
    """Roll for an interruption. Never interrupts during the first two turns."""
    return (rng or random).random() > (1 - probability) and turn_count > 2


def get_random_hold_music(rng: Optional[random.Random] = None) -> str:
    """Pick a hold music URL."""
    return (rng or random).choice(HOLD_MUSIC_URLS)
