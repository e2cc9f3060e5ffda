"""SMS dispatch integration."""

from .smsService import SmsDispatchError, SmsSender, TwilioSmsSender

__all__ = ["SmsDispatchError", "SmsSender", "TwilioSmsSender"]
