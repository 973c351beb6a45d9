from enum import Enum


class RunMode(str, Enum):
    ASSIST = "assist"
    AUTOPILOT = "autopilot"


class AutomationMode(str, Enum):
    DRY_RUN = "dry-run"
    LIVE = "live"


class RunStatus(str, Enum):
    RUNNING = "running"
    SUCCESS = "success"
    PARTIAL = "partial"
    ERROR = "error"


class StepStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    BLOCKED = "blocked"
    PENDING_APPROVAL = "pending_approval"
    SKIPPED = "skipped"


class StepKind(str, Enum):
    DISCOVER_JOBS = "discover_jobs"
    FILL_APPLICATION = "fill_application"
    CONTACT_RECRUITERS = "contact_recruiters"
    REQUEST_REFERRALS = "request_referrals"

    PLAN = "plan"
    LINKEDIN_LOGIN = "linkedin_login"
    SUBMIT_APPLICATION = "submit_application"
    MESSAGE_RECRUITERS = "message_recruiters"
    BROWSER_SESSION = "browser_session"


class BrowserPhase(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    DISCOVERING = "discovering"
    APPLYING = "applying"
    MESSAGING = "messaging"
    FINALIZING = "finalizing"


class MessageTone(str, Enum):
    PROFESSIONAL = "professional"
    CASUAL = "casual"
    FORMAL = "formal"


class ConnectionStatus(str, Enum):
    SUGGESTED = "suggested"
    CONNECTED = "connected"
    PENDING = "pending"


class ApplicationStatus(str, Enum):
    APPLIED = "applied"
    SCREENING = "screening"
    INTERVIEW = "interview"
    OFFER = "offer"
    REJECTED = "rejected"
    ERROR = "error"


class ApplicationSource(str, Enum):
    MANUAL = "manual"
    AUTOMATION = "automation"


class FollowUpStatus(str, Enum):
    SCHEDULED = "scheduled"
    PENDING = "pending"
    DRAFT = "draft"
    SENT = "sent"


class OutreachKind(str, Enum):
    MESSAGE = "message"
    CONNECTION_REQUEST = "connection_request"


class ReferralStatus(str, Enum):
    SENT = "sent"
    VIEWED = "viewed"
    RESPONDED = "responded"
    REFERRED = "referred"


class ActivityType(str, Enum):
    APPLICATION = "application"
    REFERRAL = "referral"
    INTERVIEW = "interview"
    OFFER = "offer"
    CONNECTION = "connection"
    MATCH = "match"
    NETWORK = "network"


class EventSource(str, Enum):
    AGENT = "agent"
    BROWSER = "browser"
    AUTOMATION = "automation"


class QuotaKind(str, Enum):
    APPLICATIONS = "applications"
    OUTREACH = "outreach"
