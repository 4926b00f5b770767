"""
Django admin configuration for marketplace models.

Lifecycle status fields and derived rating fields are read-only here; they are
owned by the lifecycle coordinator and the rating aggregator.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.translation import gettext_lazy as _

from .models import Listing, Review, Transaction, User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """
    Custom admin interface for User model.

    Extends Django's UserAdmin to include marketplace fields.
    """

    # Fields to display in the list view
    list_display = [
        'email',
        'username',
        'department',
        'role',
        'status',
        'is_verified',
        'rating',
        'total_reviews',
        'created_at',
    ]

    # Fields to filter by in the sidebar
    list_filter = [
        'role',
        'status',
        'is_verified',
        'is_staff',
        'is_superuser',
        'created_at',
    ]

    search_fields = [
        'email',
        'username',
        'first_name',
        'last_name',
        'department',
    ]

    ordering = ['-created_at']

    fieldsets = (
        (None, {
            'fields': ('username', 'password')
        }),
        (_('Personal Info'), {
            'fields': (
                'first_name',
                'last_name',
                'email',
                'phone_number',
                'department',
            )
        }),
        (_('Account Standing'), {
            'fields': ('role', 'status', 'is_verified')
        }),
        (_('Reputation'), {
            'fields': ('rating', 'total_reviews')
        }),
        (_('Permissions'), {
            'fields': (
                'is_active',
                'is_staff',
                'is_superuser',
                'groups',
                'user_permissions',
            ),
            'classes': ('collapse',),
        }),
        (_('Important Dates'), {
            'fields': ('last_login', 'date_joined', 'created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    # Fields to display when adding a new user
    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': (
                'username',
                'email',
                'password1',
                'password2',
                'department',
                'role',
            ),
        }),
    )

    readonly_fields = [
        'rating',
        'total_reviews',
        'created_at',
        'updated_at',
        'last_login',
        'date_joined',
    ]

    date_hierarchy = 'created_at'

    list_per_page = 25

    def get_readonly_fields(self, request, obj=None):
        """
        Keep timestamps and reputation read-only on existing users.

        Returns:
            list: Read-only field names
        """
        if obj:  # Editing an existing object
            return self.readonly_fields
        return ['rating', 'total_reviews']


class TransactionInline(admin.TabularInline):
    """Read-only inline of a listing's transactions."""
    model = Transaction
    fk_name = 'listing'
    extra = 0
    can_delete = False
    fields = ['id', 'buyer', 'status', 'payment_status', 'reservation_date']
    readonly_fields = fields
    show_change_link = True

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Listing)
class ListingAdmin(admin.ModelAdmin):
    """Admin interface for Listing model."""

    list_display = [
        'title',
        'seller',
        'price',
        'category',
        'location',
        'status',
        'created_at',
    ]

    list_filter = [
        'status',
        'category',
        'location',
        'created_at',
    ]

    search_fields = [
        'title',
        'description',
        'seller__email',
        'seller__username',
    ]

    readonly_fields = ['status', 'created_at', 'updated_at']

    ordering = ['-created_at']

    date_hierarchy = 'created_at'

    list_per_page = 25

    inlines = [TransactionInline]

    fieldsets = (
        (None, {
            'fields': ('seller', 'title', 'description', 'images')
        }),
        (_('Pricing & Category'), {
            'fields': ('price', 'category', 'subcategory', 'condition', 'service_type')
        }),
        (_('Location & Rental Period'), {
            'fields': ('location', 'specific_location', 'rental_start', 'rental_end')
        }),
        (_('Status'), {
            'fields': ('status',)
        }),
        (_('Timestamps'), {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    """Admin interface for Transaction model. Transactions are read-only."""

    list_display = [
        'id',
        'buyer',
        'seller',
        'listing',
        'amount',
        'status',
        'payment_status',
        'reservation_date',
        'completion_date',
    ]

    list_filter = [
        'status',
        'payment_status',
        'reservation_date',
    ]

    search_fields = [
        'buyer__email',
        'buyer__username',
        'seller__email',
        'seller__username',
        'listing__title',
    ]

    readonly_fields = [
        'buyer',
        'seller',
        'listing',
        'amount',
        'status',
        'payment_status',
        'reservation_date',
        'completion_date',
        'cancellation_date',
        'cancellation_reason',
        'created_at',
        'updated_at',
    ]

    ordering = ['-reservation_date']

    date_hierarchy = 'reservation_date'

    list_per_page = 25

    fieldsets = (
        (None, {
            'fields': ('buyer', 'seller', 'listing', 'amount')
        }),
        (_('Lifecycle'), {
            'fields': (
                'status',
                'payment_status',
                'reservation_date',
                'completion_date',
                'cancellation_date',
                'cancellation_reason',
            )
        }),
        (_('Timestamps'), {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    def has_add_permission(self, request):
        return False


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    """Admin interface for Review model."""

    list_display = [
        'id',
        'reviewer',
        'reviewed_user',
        'transaction',
        'type',
        'rating',
        'created_at',
    ]

    list_filter = [
        'type',
        'rating',
        'created_at',
    ]

    search_fields = [
        'reviewer__email',
        'reviewer__username',
        'reviewed_user__email',
        'reviewed_user__username',
        'comment',
    ]

    readonly_fields = ['reviewer', 'reviewed_user', 'transaction', 'listing', 'type', 'created_at', 'updated_at']

    ordering = ['-created_at']

    date_hierarchy = 'created_at'

    list_per_page = 25

    fieldsets = (
        (None, {
            'fields': ('reviewer', 'reviewed_user', 'transaction', 'listing', 'type')
        }),
        (_('Review Content'), {
            'fields': ('rating', 'comment')
        }),
        (_('Timestamps'), {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    def has_add_permission(self, request):
        return False
