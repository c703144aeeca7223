# Schemas package (re-export feature modules for stable imports)
from .scheduling.schedule import *
from .appointments.appointment import *
from .notifications.notification import *
from .common.common import *
