"""Compiled message patterns.

Patterns match the message part of a log line (timestamp already removed).
Sentinel-prefixed system patterns match the body after the sentinel and any
surrounding whitespace has been stripped.
"""

from __future__ import annotations

import re

# =============================================================================
# Character Detection
# =============================================================================

WELCOME_LOGIN = re.compile(r"^Welcome to Clan Lord, (.+)!$")
WELCOME_BACK = re.compile(r"^Welcome back, (.+)!$")

# =============================================================================
# NPC Speech With Meaning (checked before the speech filter)
# =============================================================================

KARMA_RECEIVED = re.compile(
    r"^You just received (?:anonymous )?(good|bad) karma(?: from (.+))?\.$"
)
APPLY_LEARNING_FULL = re.compile(
    r"Congratulations, (.+?)\. You should now understand much more of (.+?)['’]s teachings\."
)
APPLY_LEARNING_PARTIAL = re.compile(
    r"Congratulations, (.+?)\. You should now understand more of (.+?)['’]s teachings\."
)
PROFESSION_CIRCLE_TEST = re.compile(
    r"Congratulations go out to (.+?), who has just passed the \w+ circle (\w+) test\."
)
PROFESSION_BECOME = re.compile(r"Congratulations to (.+?), who has just become an? (\w+)\.")
UNTRAINED = re.compile(r'^Untrainus says, ".+, your mind is less cluttered now\."')

# =============================================================================
# Speech & Emotes (no event)
# =============================================================================

SPEECH = re.compile(r'^.+ (?:says|exclaims|yells|ponders|thinks|asks), "')
EMOTE = re.compile(r"^\(.+ .+\)$")

# =============================================================================
# Kills & Deaths
# =============================================================================

SOLO_KILL = re.compile(r"^You (killed|slaughtered|vanquished|dispatched) (.+)\.$")
ASSISTED_KILL = re.compile(r"^You helped (kill|slaughter|vanquish|dispatch) (.+)\.$")

# "X has fallen." has no cause and is a reconnect-while-dead status line.
FALLEN = re.compile(r"^(.+) has fallen to (?:an? )?(.+)\.$")
RECOVERED = re.compile(r"^(.+) is no longer fallen\.$")
FIRST_DEPART = re.compile(r"^This is the first time your spirit has departed your body\.$")
DEPART_COUNT = re.compile(r"^Your spirit has departed your body (\d+) times?\.$")

# =============================================================================
# Coins & Loot
# =============================================================================

COINS_PICKED_UP = re.compile(r"^\* You pick up (\d+) coins?\.$")
COIN_BALANCE = re.compile(r"^You have (\d+) coins?\.$")
LOOT_SHARE = re.compile(
    r"^\* .+ recovers? the (.+) (fur|blood|mandibles?), worth (\d+)c\. Your share is (\d+)c\.$"
)
SELF_RECOVERY = re.compile(r"^\* You recover the (.+) (fur|blood|mandibles?), worth (\d+)c\.$")

# =============================================================================
# Equipment
# =============================================================================

BELL_BROKEN = re.compile(r"^\* Your bell crumbles to dust\.$")
BELL_USED = re.compile(r"^\* The bell rings soundlessly into the void, summoning")
CHAIN_BREAK = re.compile(r"^Your chain breaks as you try to use it\.$")
CHAIN_SHATTER = re.compile(r"^A link in your chain shatters\.$")
CHAIN_SNAP = re.compile(r"^Your chain snaps as you try to use it\.$")
CHAIN_DRAG = re.compile(r"^You start dragging (.+)\.$")
SHIELDSTONE_USED = re.compile(r"^\* You activate your shieldstone\.$")
SHIELDSTONE_BROKEN = re.compile(r"^Your Shieldstone goes inert\.$")
ETHEREAL_PORTAL = re.compile(r"^You open an ethereal portal\.$")
ETHEREAL_STONE_USED = re.compile(r"^Your ethereal portal stone disappears into the ether\.$")

# =============================================================================
# Esteem, Experience, Clanning, Connection
# =============================================================================

ESTEEM_GAIN = re.compile(r"^\* You gain (?:experience and )?esteem")
EXPERIENCE_GAIN = re.compile(r"^\* You (?:grow more mindful|gain experience|gain morale)")
CLANNING_ON = re.compile(r"^(.+) is now Clanning\.$")
CLANNING_OFF = re.compile(r"^(.+) is no longer Clanning\.$")
DISCONNECT = re.compile(
    r"^\*\*\* We are no longer connected to the Clan Lord game server\. \*\*\*$"
)

# =============================================================================
# Sentinel-Prefixed System Messages
# =============================================================================

STUDY_CHARGE = re.compile(r"^You have been charged (\d+) coins? for advanced studies\.$")
STUDY_PROGRESS = re.compile(
    r"^You are (?:currently studying|remembering your studies of) the (.+), "
    r"and have (.+) left to learn\.$"
)
STUDY_ABANDON = re.compile(r"^You abandon your study of the (.+)\.$")
LASTY_BEGIN_STUDY = re.compile(r"^You begin studying the (movements|ways|essence) of the (.+)\.$")
LASTY_LEARN_PROGRESS = re.compile(
    r"^You have .+ left to learn about the (movements|ways|essence) of the (.+)\.$"
)
LASTY_BEFRIEND = re.compile(r"^You learn to befriend the (.+)\.$")
LASTY_MORPH = re.compile(r"^You learn to assume the form of the (.+)\.$")
LASTY_MOVEMENTS = re.compile(r"^You learn to fight the (.+) more effectively\.$")
LASTY_COMPLETED = re.compile(r"^You have completed your training with (.+)\.$")

SYSTEM_HEALING_SENSE = re.compile(r"^You sense healing energy from .+\.$")
SYSTEM_SUN_EVENT = re.compile(r"^The Sun (?:rises|sets)\.$")
SYSTEM_STUDY_GAIN = re.compile(r"^You gain experience from your")
SYSTEM_STUDY_CONCURRENT = re.compile(r"^You can study up to \d+ creatures? concurrently\.$")

IGNORED_SYSTEM_PATTERNS = (
    SYSTEM_HEALING_SENSE,
    SYSTEM_SUN_EVENT,
    SYSTEM_STUDY_GAIN,
    SYSTEM_STUDY_CONCURRENT,
)
