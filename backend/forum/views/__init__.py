from forum.views.admin_handlers import ban_user as ban_user
from forum.views.auth_handlers import (
    login as login,
)
from forum.views.auth_handlers import (
    login_page as login_page,
)
from forum.views.auth_handlers import (
    logout as logout,
)
from forum.views.auth_handlers import (
    register as register,
)
from forum.views.auth_handlers import (
    register_page as register_page,
)
from forum.views.oauth_handlers import (
    oauth_callback as oauth_callback,
)
from forum.views.oauth_handlers import (
    oauth_login as oauth_login,
)
from forum.views.oauth_handlers import (
    oauth_register as oauth_register,
)
from forum.views.profile_handlers import home as home
from forum.views.profile_handlers import my_profile as my_profile
