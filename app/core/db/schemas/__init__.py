# Import models so Base metadata is aware of them
from .auth import User  # noqa: F401
from .flashcards import Flashcard, Difficulty  # noqa: F401
from .billing import Subscription, Plan, SubscriptionStatus  # noqa: F401
