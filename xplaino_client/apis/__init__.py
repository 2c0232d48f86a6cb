from .account_api import SubscriptionApi, UserSettingsApi
from .ask_api import AskApi
from .coupon_api import CouponApi
from .folder_api import FolderApi
from .issue_api import IssueApi
from .saved_image_api import SavedImageApi
from .saved_paragraph_api import SavedParagraphApi
from .simplify_api import SimplifyApi
from .words_api import WordsApi

__all__ = [
    "WordsApi",
    "FolderApi",
    "SavedParagraphApi",
    "SavedImageApi",
    "SimplifyApi",
    "AskApi",
    "IssueApi",
    "UserSettingsApi",
    "SubscriptionApi",
    "CouponApi",
]
