from .recaptcha_verifier import RECAPTCHA_HEADER, RecaptchaAssessment, RecaptchaVerifier

__all__ = ["RECAPTCHA_HEADER", "RecaptchaAssessment", "RecaptchaVerifier"]
