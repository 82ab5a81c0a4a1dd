from .user import User  # noqa: F401
from .agency import Agency, AgencyAddOn, UserAgency  # noqa: F401
from .client import Client, ClientAgencyIncluded, Keyword, TargetKeyword  # noqa: F401
