import logging

logger = logging.getLogger(__name__)


class SmsSender:
    """Out-of-band channel for one-time codes."""

    def send_otp(self, phone: str, code: str) -> None:
        raise NotImplementedError


class LoggingSmsSender(SmsSender):
    """Development sender: writes the code to the application log instead of an SMS gateway."""

    def send_otp(self, phone: str, code: str) -> None:
        logger.info("OTP for %s: %s", phone, code)


_sender: SmsSender = LoggingSmsSender()


def get_sms_sender() -> SmsSender:
    return _sender
