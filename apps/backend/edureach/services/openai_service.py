from typing import Iterable, List, Optional
from uuid import UUID

from loguru import logger
from openai import AsyncOpenAI

from ..config import settings
from ..schemas import ChatMessage, ConversationRecord

FALLBACK_REPLY = "I'm sorry, I couldn't process your request. Please try again later."

DISCLAIMER = (
    "\n\n*Note: I'm an AI assistant. For specific questions about your account, "
    "please contact our support team.*"
)

WEBSITE_INFO = """
## About Our Platform:
- Name: EduReach 360
- Purpose: To empower educators with professional development and career growth opportunities
- Key Features:
  - AI-Powered Career Counseling
  - Professional Development Courses
  - Teaching Resources
  - Community Forums
  - Certification Programs

## Membership Plans:
1. **Basic**: Free access to limited resources
2. **Premium**: Full access to all courses and resources
3. **Institutional**: For schools and educational institutions

## Available Courses:
- Classroom Management
- Innovative Teaching Methods
- Educational Technology
- Student Engagement Strategies
- Special Education
- Leadership in Education
"""

SYSTEM_PROMPT = f"""You are EduGenie, an AI education counselor for EduReach 360. Your primary role is to assist teachers with their professional development and career growth.

**Your Capabilities:**
1. Provide information about our platform's features and services
2. Guide teachers to relevant courses and resources
3. Offer advice on teaching methodologies and classroom strategies
4. Help with career development in education
5. Explain membership plans and benefits

**Important Guidelines:**
- Always be professional, supportive, and empathetic
- Keep responses concise and focused on educational topics
- If you don't know an answer, direct them to contact support
- If asked about sensitive topics, politely steer the conversation back to education
- Always maintain a positive and encouraging tone

{WEBSITE_INFO}"""


class ChatService:
    """Thin wrapper around the chat completion API for the counselor widget"""

    def __init__(self, client: Optional[AsyncOpenAI] = None, model: Optional[str] = None):
        self.client = client or AsyncOpenAI(api_key=settings.OPENAI_API_KEY)
        self.model = model or settings.OPENAI_MODEL

    async def complete_chat(self, messages: Iterable[ChatMessage]) -> str:
        """
        Get the counselor's reply to a conversation

        Args:
            messages: Conversation so far, oldest first (no system message needed)

        Returns:
            str: Assistant reply with the AI disclaimer appended
        """
        payload = [{"role": "system", "content": SYSTEM_PROMPT}]
        payload.extend({"role": m.role, "content": m.content} for m in messages)

        completion = await self.client.chat.completions.create(
            model=self.model,
            messages=payload,
            temperature=0.7,
            max_tokens=1000,
            top_p=0.9,
            frequency_penalty=0.5,
            presence_penalty=0.5,
        )
        reply = completion.choices[0].message.content if completion.choices else None
        return (reply or FALLBACK_REPLY) + DISCLAIMER


def save_exchange(
    store,
    lead_id: Optional[UUID],
    conversation_id: Optional[UUID],
    new_messages: List[ChatMessage],
) -> Optional[ConversationRecord]:
    """
    Persist a chat round for a lead. Appends to the given conversation or
    opens a new one. Storage failures are logged and never fail the chat.
    """
    try:
        if conversation_id:
            return store.append_messages(conversation_id, new_messages)
        if lead_id:
            return store.create_conversation(lead_id, new_messages)
    except Exception as e:
        logger.error("Error saving conversation to database: {}", e)
    return None
