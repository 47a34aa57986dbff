"""
驗證服務：名稱與推薦碼規則

純計算邏輯，不碰資料庫。QueueManager.admit 會在存取 store 之前呼叫。
"""
import re

from core.exceptions import ValidationError

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 50

# 以 fullmatch 比對整串（不接受結尾換行）
REFERRAL_CODE_PATTERN = re.compile(r"[A-Za-z0-9]{5,10}")

# 這些網域的推薦連結直接接受
REFERRAL_LINK_MARKERS = ("temu.to", "temu.com")


def name_length(name: str) -> int:
    """
    以 UTF-16 code unit 計算名稱長度

    前端與既有資料都以 UTF-16 計長，emoji 等 BMP 以外的字元算 2。

    範例：
        name_length("Ana") -> 3
        name_length("😀")  -> 2
    """
    return len(name.encode("utf-16-le")) // 2


def validate_name(name: str) -> str:
    """
    檢查顯示名稱長度（2-50 個 UTF-16 單位）

    返回：
        原本的名稱

    異常：
        ValidationError: 型別錯誤或長度不符
    """
    if not isinstance(name, str):
        raise ValidationError("name", "must be a string")
    if not NAME_MIN_LENGTH <= name_length(name) <= NAME_MAX_LENGTH:
        raise ValidationError(
            "name",
            f"must be between {NAME_MIN_LENGTH} and {NAME_MAX_LENGTH} characters"
        )
    return name


def is_referral_link(code: str) -> bool:
    return any(marker in code for marker in REFERRAL_LINK_MARKERS)


def validate_referral_code(code: str) -> str:
    """
    接受 5-10 位英數推薦碼，或可辨識的推薦連結

    範例：
        "ABCDE"                -> 通過
        "https://temu.to/xyz"  -> 通過
        "ab"                   -> ValidationError
        "ABCDE\\n"              -> ValidationError
    """
    if not isinstance(code, str):
        raise ValidationError("referralCode", "must be a string")
    if is_referral_link(code):
        return code
    if not REFERRAL_CODE_PATTERN.fullmatch(code):
        raise ValidationError(
            "referralCode",
            "must be a 5-10 character alphanumeric code or a valid referral link"
        )
    return code
