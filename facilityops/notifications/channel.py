import requests

from facilityops.logging_config import get_logger

logger = get_logger(__name__)


class DeliveryError(Exception):
    """Raised when the provider refuses or cannot be reached."""


class SmsChannel:
    """
    Sends notification texts through the Twilio Messages API.

    When credentials are not configured, sends are skipped and logged so
    local environments work without an SMS account.
    """

    def __init__(self, account_sid=None, auth_token=None, from_number=None,
                 base_url="https://api.twilio.com/2010-04-01", timeout=10, session=None):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config):
        return cls(
            account_sid=config.get("TWILIO_ACCOUNT_SID"),
            auth_token=config.get("TWILIO_AUTH_TOKEN"),
            from_number=config.get("TWILIO_FROM_NUMBER"),
            base_url=config.get("TWILIO_API_BASE_URL") or "https://api.twilio.com/2010-04-01",
            timeout=config.get("TWILIO_TIMEOUT_SECONDS", 10),
        )

    @property
    def is_configured(self):
        return bool(self.account_sid and self.auth_token and self.from_number)

    def send(self, destination: str, text: str) -> dict:
        """
        Send one SMS.

        Returns:
            dict with 'provider_message_id' (None when sending was skipped)

        Raises:
            DeliveryError: on transport errors or a non-2xx response
        """
        if not self.is_configured:
            logger.info("Skipping SMS send (Twilio not configured)", to=destination, body=text)
            return {'provider_message_id': None}

        url = f"{self.base_url}/Accounts/{self.account_sid}/Messages.json"
        try:
            response = self.session.post(
                url,
                data={'To': destination, 'From': self.from_number, 'Body': text},
                auth=(self.account_sid, self.auth_token),
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.exceptions.HTTPError as http_err:
            logger.warning("Twilio rejected message", to=destination, status=response.status_code,
                           response=response.text[:500])
            raise DeliveryError(f"Twilio HTTP {response.status_code}: {response.text[:200]}") from http_err
        except requests.exceptions.RequestException as err:
            logger.warning("Twilio request failed", to=destination, error=str(err))
            raise DeliveryError(str(err)) from err

        return {'provider_message_id': response.json().get('sid')}
