import asyncio
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Dict, Literal, Optional

import aiosmtplib
from loguru import logger
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from ..config import settings
from ..schemas import LeadRecord

EmailTemplate = Literal["welcome", "payment-confirmation", "follow-up", "ai-summary", "admin-notification"]

SUBJECT_PREFIX = "[EduReach360]"

TEMPORARY_ERRORS = (
    aiosmtplib.SMTPServerDisconnected,
    aiosmtplib.SMTPConnectError,
    aiosmtplib.SMTPTimeoutError,
    asyncio.TimeoutError,
    ConnectionError,
)


class EmailResult(BaseModel):
    success: bool
    error: Optional[str] = None


class PaymentDetails(BaseModel):
    amount: Optional[int] = None
    currency: str = "INR"
    plan: Optional[str] = None
    transaction_id: Optional[str] = None


def _is_temporary(error: Exception) -> bool:
    if isinstance(error, TEMPORARY_ERRORS):
        return True
    # 4xx SMTP replies are transient
    code = getattr(error, "code", None)
    return isinstance(code, int) and 400 <= code < 500


async def send_email(
    to_email: str,
    subject: str,
    html_content: str,
    reply_to: Optional[str] = None,
    from_email: Optional[str] = None,
    from_name: Optional[str] = None,
    retries: Optional[int] = None,
) -> EmailResult:
    """
    Send email over SMTP, retrying temporary failures

    Args:
        to_email: Recipient email address
        subject: Email subject
        html_content: HTML email body
        reply_to: Optional Reply-To address
        from_email: Sender email (optional, uses SMTP_FROM_EMAIL if not provided)
        from_name: Sender name (optional, uses SMTP_FROM_NAME if not provided)
        retries: Extra attempts on temporary errors (defaults to EMAIL_RETRIES)

    Returns:
        EmailResult: success flag and the last error message
    """
    if not to_email or not subject or not html_content:
        logger.error("Email validation failed: to, subject and html are required")
        return EmailResult(success=False, error="Missing required email parameters")

    # Dev mode: nothing to send through
    if not settings.SMTP_USERNAME or not settings.SMTP_PASSWORD:
        logger.info("SMTP not configured - would send email to {} (subject: {})", to_email, subject)
        return EmailResult(success=True)

    from_email = from_email or settings.SMTP_FROM_EMAIL or settings.SMTP_USERNAME
    from_name = from_name or settings.SMTP_FROM_NAME

    message = MIMEMultipart("alternative")
    message["Subject"] = subject
    message["From"] = f"{from_name} <{from_email}>"
    message["To"] = to_email
    if reply_to:
        message["Reply-To"] = reply_to
    message.attach(MIMEText(html_content, "html"))

    retries = settings.EMAIL_RETRIES if retries is None else retries
    attempt = 0
    while True:
        try:
            await aiosmtplib.send(
                message,
                hostname=settings.SMTP_HOST,
                port=settings.SMTP_PORT,
                username=settings.SMTP_USERNAME,
                password=settings.SMTP_PASSWORD,
                start_tls=settings.SMTP_USE_TLS,
                use_tls=False,
            )
            logger.info("Email sent successfully to {}", to_email)
            return EmailResult(success=True)
        except Exception as e:
            if attempt < retries and _is_temporary(e):
                attempt += 1
                delay = settings.EMAIL_RETRY_BASE_DELAY * attempt
                logger.warning(
                    "Retrying email to {} ({} attempts left, waiting {}s): {}",
                    to_email, retries - attempt + 1, delay, e,
                )
                await asyncio.sleep(delay)
                continue
            logger.error("Email sending failed to {}: {}", to_email, e)
            return EmailResult(success=False, error=str(e))


def _format_amount(amount: Optional[int], currency: str = "INR") -> str:
    if amount is None:
        return "N/A"
    return f"{currency} {amount:,}"


def _layout(body: str) -> str:
    return f'''
    <!DOCTYPE html>
    <html>
    <head>
        <style>
            body {{ font-family: 'Segoe UI', Roboto, Arial, sans-serif; line-height: 1.6; color: #333; }}
            .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
            .panel {{ background: #F9FAFB; padding: 24px; border-radius: 8px; margin: 24px 0; }}
            .button {{ display: inline-block; padding: 12px 24px; background: #4F46E5;
                      color: white; text-decoration: none; border-radius: 6px; font-weight: 600; }}
            .footer {{ margin-top: 40px; padding-top: 20px; border-top: 1px solid #e5e7eb;
                      font-size: 14px; color: #6b7280; }}
        </style>
    </head>
    <body>
        <div class="container">
            {body}
            <div class="footer">
                <p>EduReach360. All rights reserved.</p>
                <p>If you didn't request this email, please ignore it or contact support.</p>
            </div>
        </div>
    </body>
    </html>
    '''


def render_template(
    template: EmailTemplate,
    lead: Optional[LeadRecord] = None,
    payment: Optional[PaymentDetails] = None,
) -> Dict[str, str]:
    """
    Build subject and HTML for a transactional email

    Returns:
        dict: {"subject": ..., "html": ...}
    """
    first_name = (lead.name.split(" ")[0] if lead and lead.name else None) or "there"
    dashboard = f"{settings.APP_URL}/dashboard"

    if template == "welcome":
        subject = f"{SUBJECT_PREFIX} Welcome to EduReach360!"
        body = f'''
            <h1>Welcome to EduReach360, {first_name}!</h1>
            <p>We're thrilled to have you join our community of educators.</p>
            <div class="panel">
                <h2>Getting Started</h2>
                <ol>
                    <li>Complete your profile to get personalized recommendations</li>
                    <li>Explore our teaching resources and courses</li>
                    <li>Connect with other educators in our community</li>
                </ol>
                <a href="{dashboard}" class="button">Go to Dashboard</a>
            </div>
        '''
    elif template == "payment-confirmation":
        payment = payment or PaymentDetails()
        subject = f"{SUBJECT_PREFIX} Payment Confirmed for {payment.plan or 'Your Plan'}"
        body = f'''
            <h1>Payment Confirmed!</h1>
            <p>Thank you for your purchase. Here's your receipt:</p>
            <div class="panel">
                <p><strong>Plan:</strong> {payment.plan or 'Premium Plan'}</p>
                <p><strong>Amount Paid:</strong> {_format_amount(payment.amount, payment.currency)}</p>
                {f'<p><strong>Transaction ID:</strong> {payment.transaction_id}</p>' if payment.transaction_id else ''}
                <a href="{dashboard}" class="button">Go to Dashboard</a>
            </div>
        '''
    elif template == "follow-up":
        subject = f"{SUBJECT_PREFIX} Let's Continue Your Teaching Journey"
        body = f'''
            <h1>Following up, {first_name}</h1>
            <p>We noticed you started exploring EduReach360. Pick up where you left off.</p>
            <a href="{dashboard}" class="button">Go to Dashboard</a>
        '''
    elif template == "ai-summary":
        subject = f"{SUBJECT_PREFIX} Your AI Counseling Summary"
        body = f'''
            <h1>Your AI Counseling Session, {first_name}</h1>
            <p>Thanks for chatting with our AI counselor. Your session notes are waiting in your dashboard.</p>
            <a href="{dashboard}" class="button">View Summary</a>
        '''
    elif template == "admin-notification":
        name = lead.name if lead else "New Signup"
        subject = f"{SUBJECT_PREFIX} New Lead: {name}"
        rows = ""
        if lead:
            details = {
                "Name": lead.name,
                "Email": lead.email,
                "Phone": lead.phone,
                "Role": lead.role,
                "Experience": lead.experience,
                "Goals": lead.goals,
                "Plan": lead.plan_interest,
                "AI Score": lead.ai_score or 0,
                "Status": lead.status.value,
                "Payment": lead.payment_status,
                "Amount": _format_amount(lead.amount, lead.currency or "INR") if lead.amount else None,
            }
            rows = "".join(
                f"<p><strong>{label}:</strong> {value}</p>"
                for label, value in details.items()
                if value not in (None, "")
            )
        body = f'''
            <h1>New Lead Alert!</h1>
            <div class="panel">{rows}</div>
            <p>Please follow up with this lead as soon as possible.</p>
        '''
    else:
        subject = f"{SUBJECT_PREFIX} Message from EduReach360"
        body = "<h1>EduReach360</h1><p>This is an automated message from EduReach360.</p>"

    return {"subject": subject, "html": _layout(body)}


class EmailNotifier:
    """Notification sender backed by SMTP email"""

    async def notify_new_or_updated_lead(self, lead: LeadRecord) -> EmailResult:
        template = render_template("admin-notification", lead=lead)
        result = await send_email(
            to_email=settings.ADMIN_EMAIL,
            subject=template["subject"],
            html_content=template["html"],
            reply_to=lead.email,
        )
        if result.success:
            logger.info("New lead notification sent to admin for {}", lead.email)
        else:
            logger.error("Failed to send new lead notification for {}: {}", lead.email, result.error)
        return result

    async def notify_welcome(self, email: str, name: str) -> EmailResult:
        lead_stub = LeadRecord.model_construct(name=name, email=email)
        template = render_template("welcome", lead=lead_stub)
        return await send_email(to_email=email, subject=template["subject"], html_content=template["html"])

    async def notify_payment_confirmation(self, lead: LeadRecord) -> EmailResult:
        payment = PaymentDetails(
            amount=lead.amount,
            currency=lead.currency or settings.DEFAULT_CURRENCY,
            plan=lead.plan_interest,
            transaction_id=lead.payment_id,
        )
        template = render_template("payment-confirmation", lead=lead, payment=payment)
        return await send_email(to_email=lead.email, subject=template["subject"], html_content=template["html"])


async def send_template_email(
    store,
    to_email: str,
    template: EmailTemplate,
    lead: Optional[LeadRecord] = None,
    payment: Optional[PaymentDetails] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> EmailResult:
    """
    Render and send a template email, logging the attempt and the outcome
    as interactions on the lead when one is given.
    """
    log_meta = {"template": template, "to": to_email, **(metadata or {})}

    if lead:
        content = f"Attempting to send {template} email to {to_email}"
        await run_in_threadpool(_log_interaction, store, lead, "email_attempt", content, dict(log_meta))

    rendered = render_template(template, lead=lead, payment=payment)
    result = await send_email(to_email=to_email, subject=rendered["subject"], html_content=rendered["html"])

    if lead and result.success:
        if payment and payment.transaction_id:
            log_meta["transaction_id"] = payment.transaction_id
        content = f"Successfully sent {template} email to {to_email}"
        await run_in_threadpool(_log_interaction, store, lead, "email_sent", content, log_meta)

    return result


def _log_interaction(store, lead: LeadRecord, type: str, content: str, metadata: Dict[str, Any]) -> None:
    try:
        store.add_interaction(lead.id, type, content=content, metadata=metadata)
    except Exception as e:
        logger.error("Failed to log {} for lead {}: {}", type, lead.id, e)
