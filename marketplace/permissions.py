"""
Custom permission classes for the Campus Marketplace.
"""

from rest_framework import permissions


class IsVerifiedUser(permissions.BasePermission):
    """
    Permission class that allows only verified, active accounts.

    This permission checks if the authenticated user:
    1. Has is_verified=True
    2. Has status='active' (not suspended or banned)

    Returns 403 Forbidden otherwise.

    Usage:
        class MyView(APIView):
            permission_classes = [IsAuthenticated, IsVerifiedUser]
    """

    message = 'User account is not verified.'

    def has_permission(self, request, view):
        """
        Check if user is authenticated, verified and active.

        Args:
            request: HTTP request object
            view: View being accessed

        Returns:
            bool: True if user may trade, False otherwise
        """
        user = request.user
        if not user or not user.is_authenticated:
            return False

        if not getattr(user, 'is_verified', False):
            self.message = 'User account is not verified.'
            return False

        if getattr(user, 'status', 'active') != 'active':
            self.message = 'User account is not active.'
            return False

        return True


class IsModerator(permissions.BasePermission):
    """
    Permission class that allows only moderators (admins or staff).

    Usage:
        class MyView(APIView):
            permission_classes = [IsAuthenticated, IsModerator]
    """

    message = 'You do not have permission to perform this action. Moderator privileges required.'

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False

        return request.user.is_moderator()


class IsListingSellerOrReadOnly(permissions.BasePermission):
    """
    Object-level permission: only the seller may modify a listing.

    Safe methods (GET, HEAD, OPTIONS) are allowed for everyone.
    """

    message = 'Not authorized to modify this listing.'

    def has_object_permission(self, request, view, obj):
        if request.method in permissions.SAFE_METHODS:
            return True

        return obj.seller_id == request.user.id
