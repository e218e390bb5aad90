from masjidku.core.models.user import User
from masjidku.core.models.masjid import Masjid
from masjidku.core.models.masjid_admin import MasjidAdmin
from masjidku.core.models.masjid_teacher import MasjidTeacher
from masjidku.core.models.class_model import MasjidClass
from masjidku.core.models.class_section import ClassSection
from masjidku.core.models.subject import Subject
from masjidku.core.models.class_subject import ClassSubject
from masjidku.core.models.csst import ClassSectionSubjectTeacher
from masjidku.core.models.donation import Donation
from masjidku.core.models.general_billing import GeneralBilling
from masjidku.core.models.user_general_billing import UserGeneralBilling
from masjidku.core.models.user_profile_document import UserProfileDocument

__all__ = [
    "User",
    "Masjid",
    "MasjidAdmin",
    "MasjidTeacher",
    "MasjidClass",
    "ClassSection",
    "Subject",
    "ClassSubject",
    "ClassSectionSubjectTeacher",
    "Donation",
    "GeneralBilling",
    "UserGeneralBilling",
    "UserProfileDocument",
]
