"""
Authentication backend for marketplace logins.
"""

from django.contrib.auth import get_user_model
from django.contrib.auth.backends import ModelBackend
from django.db.models import Q

User = get_user_model()


class EmailOrUsernameBackend(ModelBackend):
    """
    Lets buyers and sellers sign in with either their email address or username.

    Email matching is case-insensitive. Inactive accounts are rejected.
    """

    def authenticate(self, request, username=None, password=None, **kwargs):
        """
        Authenticate by email or username.

        Args:
            request: HTTP request object
            username: Email address or username
            password: User password
            **kwargs: May carry 'email' when the token endpoint posts one

        Returns:
            User object if authentication successful, None otherwise
        """
        login = kwargs.get('email') or username
        if not login or password is None:
            return None

        user = (
            User.objects
            .filter(Q(email__iexact=login) | Q(username=login))
            .order_by('id')
            .first()
        )
        if user is None:
            # Run the hasher so unknown logins take as long as known ones
            User().set_password(password)
            return None

        if user.check_password(password) and self.user_can_authenticate(user):
            return user
        return None
