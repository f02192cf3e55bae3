from enum import Enum


class SupportCategory(str, Enum):
    DOMESTIC_ABUSE = "domestic_abuse"
    DEBT_ADVICE = "debt_advice"
    POVERTY_WELFARE = "poverty_welfare"
    GENERAL_COUNSELLING = "general_counselling"


class ConsultationType(str, Enum):
    PHONE = "phone"
    IN_PERSON = "in_person"


class Language(str, Enum):
    ENGLISH = "en"
    HINDI = "hi"
    GUJARATI = "gu"
    PUNJABI = "pu"
    POLISH = "pl"


class BookingStatus(str, Enum):
    UPCOMING = "upcoming"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


SUPPORT_CATEGORY_LABELS = {
    SupportCategory.DOMESTIC_ABUSE: "Domestic Abuse Support",
    SupportCategory.DEBT_ADVICE: "Debt & Money Advice",
    SupportCategory.POVERTY_WELFARE: "Poverty & Welfare Support",
    SupportCategory.GENERAL_COUNSELLING: "General Counselling",
}

TERMINAL_STATUSES = frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.NO_SHOW})
