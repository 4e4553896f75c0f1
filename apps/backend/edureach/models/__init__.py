from .db import Base, engine
from .membership_plan import MembershipPlan
from .lead import Lead
from .interaction import Interaction
from .conversation import Conversation
from .message import Message

def create_all(bind=None):
    Base.metadata.create_all(bind=bind or engine)
