import html
from typing import List, Optional

from pydantic import BaseModel

from core.interfaces import MatchNotice


class NotificationMessage(BaseModel):
    recipient: str
    subject: str
    body: str
    html_body: Optional[str] = None
    event_type: str = "general"


class NotificationMessageBuilder:
    """Subject and body text for match emails."""

    def __init__(self, base_url: str = "http://localhost:3000", expiry_days: int = 7):
        self.base_url = base_url.rstrip('/')
        self.expiry_days = expiry_days

    def accept_url(self, match_id: str) -> str:
        return f"{self.base_url}/match/{match_id}/accept"

    @staticmethod
    def format_background(faculty: Optional[str]) -> str:
        return faculty or "Background not specified"

    def build_match_notification(self, notice: MatchNotice) -> NotificationMessage:
        """Message to the matched candidate asking them to accept or decline."""
        requester = notice.requester_name or "A fellow student"
        accept_url = self.accept_url(notice.match_id)

        body = f"""You've been matched!

{requester} has a question that matches your knowledge areas (score: {notice.score} points).

Background: {self.format_background(notice.requester_faculty)}

Their question:
"{notice.request_text}"

Accept and connect: {accept_url}

No pressure! Only accept if you're genuinely interested and have time to help.
This link will expire in {self.expiry_days} days.
"""

        html_body = f"""<!DOCTYPE html>
<html>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
    <h2>You've been matched!</h2>
    <p>{html.escape(requester)} has a question that matches your knowledge areas
       (score: <strong>{notice.score} points</strong>).</p>
    <p><strong>Background:</strong> {html.escape(self.format_background(notice.requester_faculty))}</p>
    <blockquote>"{html.escape(notice.request_text)}"</blockquote>
    <p><a href="{html.escape(accept_url, quote=True)}">Accept &amp; Connect</a></p>
    <p style="font-size: 12px; color: #666;">This link will expire in {self.expiry_days} days.</p>
</body>
</html>"""

        return NotificationMessage(
            recipient=notice.candidate_email or "",
            subject="You've been matched with a curious student!",
            body=body,
            html_body=html_body,
            event_type="match_notification",
        )

    def build_connection_messages(self, notice: MatchNotice) -> List[NotificationMessage]:
        """One introduction message to each side of an accepted match."""
        requester = notice.requester_name or "your match"
        candidate = notice.candidate_name or "your match"

        to_requester = f"""Great news! {candidate} accepted your request.

Your question:
"{notice.request_text}"

You can reach {candidate} at {notice.candidate_email or 'their registered email'}.
Reach out to arrange a chat.
"""
        to_candidate = f"""Thanks for accepting! You're now connected with {requester}.

Their question:
"{notice.request_text}"

You can reach {requester} at {notice.requester_email or 'their registered email'}.
"""

        messages = []
        if notice.requester_email:
            messages.append(NotificationMessage(
                recipient=notice.requester_email,
                subject=f"You're connected with {candidate}!",
                body=to_requester,
                event_type="connection",
            ))
        if notice.candidate_email:
            messages.append(NotificationMessage(
                recipient=notice.candidate_email,
                subject=f"You're connected with {requester}!",
                body=to_candidate,
                event_type="connection",
            ))
        return messages
