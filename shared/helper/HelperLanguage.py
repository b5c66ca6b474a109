"""Language detection and localized user-facing messages."""

import re

from langdetect import DetectorFactory, detect_langs
from langdetect.lang_detect_exception import LangDetectException

# deterministic results
DetectorFactory.seed = 0

DEFAULT_LANGUAGE = "en"

# letters only Vietnamese uses among Latin scripts
_VIETNAMESE_RE = re.compile(
    r"[àáảãạăằắẳẵặâầấẩẫậèéẻẽẹêềếểễệìíỉĩịòóỏõọôồốổỗộơờớởỡợùúủũụưừứửữựỳýỷỹỵđ]",
    re.IGNORECASE,
)

MESSAGES: dict[str, dict[str, str]] = {
    "timeout": {
        "en": "The request took too long. Please try again.",
        "vi": "Yêu cầu mất quá nhiều thời gian. Vui lòng thử lại.",
    },
    "provider_unavailable": {
        "en": "The assistant is temporarily unavailable. Please try again in a moment.",
        "vi": "Hệ thống đang quá tải hoặc tạm thời không khả dụng. Vui lòng thử lại sau.",
    },
    "tools_failed": {
        "en": "I could not retrieve the information right now.",
        "vi": "Không thể lấy thông tin lúc này.",
    },
    "configuration": {
        "en": "System configuration error. Please contact the administrator.",
        "vi": "Lỗi cấu hình hệ thống. Vui lòng liên hệ quản trị viên.",
    },
    "scope_required": {
        "en": "Either property_id or owner_id is required.",
        "vi": "Cần cung cấp property_id hoặc owner_id.",
    },
    "generic": {
        "en": "Something went wrong. Please try again.",
        "vi": "Đã xảy ra lỗi. Vui lòng thử lại.",
    },
}

LANGUAGE_NAMES = {"en": "English", "vi": "Vietnamese"}


class HelperLanguage:
    """Detects the language of user messages and resolves localized messages."""

    @staticmethod
    def detect(text: str | None) -> str:
        """Detect the language of a user message.

        Vietnamese diacritics win over the statistical detector, which is unreliable
        on short chat messages. Anything that is neither Vietnamese nor detectable
        falls back to English.

        Args:
            text (str | None): The user message.

        Returns:
            str: ISO 639-1 language code.
        """
        if not text or not text.strip():
            return DEFAULT_LANGUAGE
        if _VIETNAMESE_RE.search(text):
            return "vi"
        try:
            candidates = detect_langs(text)
        except LangDetectException:
            return DEFAULT_LANGUAGE
        if candidates and candidates[0].lang in LANGUAGE_NAMES and candidates[0].prob >= 0.8:
            return candidates[0].lang
        return DEFAULT_LANGUAGE

    @staticmethod
    def message(key: str, language: str = DEFAULT_LANGUAGE) -> str:
        """Return the localized message for a key, falling back to English."""
        variants = MESSAGES.get(key, MESSAGES["generic"])
        return variants.get(language, variants[DEFAULT_LANGUAGE])

    @staticmethod
    def language_name(language: str) -> str:
        return LANGUAGE_NAMES.get(language, LANGUAGE_NAMES[DEFAULT_LANGUAGE])
