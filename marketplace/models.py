"""
Data models for the Campus Marketplace.

Status fields on Listing and Transaction, and the rating fields on User, are
written only by ``marketplace.coordinator`` and ``marketplace.ratings``.
"""

from decimal import Decimal

from django.contrib.auth.models import AbstractUser
from django.core.exceptions import ValidationError
from django.core.validators import MaxLengthValidator, MaxValueValidator, MinLengthValidator, MinValueValidator
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from .lifecycle import (
    ACTIVE_TRANSACTION_STATUSES,
    ListingStatus,
    PaymentStatus,
    ReviewType,
    TransactionStatus,
)
from .validators import validate_image_urls, validate_phone_number


class User(AbstractUser):
    """
    Custom User model extending Django's AbstractUser.

    Additional fields:
    - email: Required, unique email address
    - phone_number: Optional phone number with validation
    - department: Academic department
    - role: Either 'user' or 'admin' (admins moderate listings and reviews)
    - status: Account standing (active, suspended, banned)
    - is_verified: Verified campus account; required for trading
    - rating / total_reviews: Derived from reviews, maintained by the rating aggregator
    - created_at: Account creation timestamp
    - updated_at: Last update timestamp
    """

    ROLE_USER = 'user'
    ROLE_ADMIN = 'admin'
    ROLE_CHOICES = [
        (ROLE_USER, 'User'),
        (ROLE_ADMIN, 'Admin'),
    ]

    STATUS_ACTIVE = 'active'
    STATUS_SUSPENDED = 'suspended'
    STATUS_BANNED = 'banned'
    STATUS_CHOICES = [
        (STATUS_ACTIVE, 'Active'),
        (STATUS_SUSPENDED, 'Suspended'),
        (STATUS_BANNED, 'Banned'),
    ]

    email = models.EmailField(
        _('email address'),
        unique=True,
        blank=False,
        null=False,
        error_messages={
            'unique': _('A user with that email already exists.'),
        },
        help_text=_('Required. Enter a valid email address.')
    )

    phone_number = models.CharField(
        _('phone number'),
        max_length=20,
        blank=True,
        default='',
        validators=[validate_phone_number],
        help_text=_('Optional. Enter phone number in international format.')
    )

    department = models.CharField(
        _('department'),
        max_length=200,
        blank=True,
        default='',
        help_text=_('Academic department.')
    )

    role = models.CharField(
        _('role'),
        max_length=10,
        choices=ROLE_CHOICES,
        default=ROLE_USER,
        help_text=_('Admins may moderate listings and reviews.')
    )

    status = models.CharField(
        _('account status'),
        max_length=10,
        choices=STATUS_CHOICES,
        default=STATUS_ACTIVE,
    )

    is_verified = models.BooleanField(
        _('verified status'),
        default=False,
        help_text=_('Indicates whether the campus account has been verified.')
    )

    rating = models.DecimalField(
        _('rating'),
        max_digits=2,
        decimal_places=1,
        default=Decimal('0.0'),
        validators=[
            MinValueValidator(Decimal('0.0'), message=_('Rating cannot be negative.')),
            MaxValueValidator(Decimal('5.0'), message=_('Rating cannot exceed 5.0.'))
        ],
        help_text=_('Average of all ratings received. Maintained automatically.')
    )

    total_reviews = models.PositiveIntegerField(
        _('total reviews'),
        default=0,
        help_text=_('Number of reviews received. Maintained automatically.')
    )

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True,
        help_text=_('Timestamp when the account was created.')
    )

    updated_at = models.DateTimeField(
        _('updated at'),
        auto_now=True,
        help_text=_('Timestamp when the account was last updated.')
    )

    class Meta:
        verbose_name = _('user')
        verbose_name_plural = _('users')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['role'], name='user_role_idx'),
            models.Index(fields=['status'], name='user_status_idx'),
            models.Index(fields=['is_verified'], name='user_verified_idx'),
        ]

    def __str__(self):
        """Return email as string representation."""
        return self.email or self.username

    def is_moderator(self):
        """
        Check if user may moderate listings and reviews.

        Returns:
            bool: True for admins and staff, False otherwise
        """
        return self.role == self.ROLE_ADMIN or self.is_staff

    def clean(self):
        """Normalize email to lowercase and require it."""
        super().clean()

        if self.email:
            self.email = self.email.lower()

        if not self.email:
            raise ValidationError({
                'email': _('Email address is required.')
            })

    def save(self, *args, **kwargs):
        """Normalize email before saving."""
        if self.email:
            self.email = self.email.lower()
        super().save(*args, **kwargs)


class Listing(models.Model):
    """
    A sellable item, service or rental offered by a seller.

    Fields:
    - seller: Foreign key to User (immutable after creation)
    - title, description: Listing text
    - price: Asking price (non-negative)
    - category / subcategory: Goods, Services or Rentals
    - images: List of image URLs (at least one)
    - location / specific_location: Where the exchange happens
    - condition: Required for goods
    - rental_start / rental_end: Required for rentals
    - service_type: Required for services
    - status: Availability; changed only by the lifecycle coordinator
    """

    CATEGORY_GOODS = 'Goods'
    CATEGORY_SERVICES = 'Services'
    CATEGORY_RENTALS = 'Rentals'
    CATEGORY_CHOICES = [
        (CATEGORY_GOODS, 'Goods'),
        (CATEGORY_SERVICES, 'Services'),
        (CATEGORY_RENTALS, 'Rentals'),
    ]

    LOCATION_CHOICES = [
        ('Main Campus', 'Main Campus'),
        ('Engineering Campus', 'Engineering Campus'),
        ('Science Campus', 'Science Campus'),
        ('Medical Campus', 'Medical Campus'),
        ('Other', 'Other'),
    ]

    CONDITION_CHOICES = [
        ('New', 'New'),
        ('Like New', 'Like New'),
        ('Good', 'Good'),
        ('Fair', 'Fair'),
        ('Poor', 'Poor'),
    ]

    seller = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='listings',
        help_text=_('User selling this listing')
    )

    title = models.CharField(
        _('title'),
        max_length=100,
        validators=[MinLengthValidator(3)],
        help_text=_('Title of the listing (3-100 characters)')
    )

    description = models.TextField(
        _('description'),
        validators=[MaxLengthValidator(1000)],
        help_text=_('Detailed description (max 1000 characters)')
    )

    price = models.DecimalField(
        _('price'),
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'), message=_('Price cannot be negative.'))],
        help_text=_('Asking price')
    )

    category = models.CharField(
        _('category'),
        max_length=20,
        choices=CATEGORY_CHOICES,
    )

    subcategory = models.CharField(
        _('subcategory'),
        max_length=50,
    )

    images = models.JSONField(
        _('images'),
        default=list,
        validators=[validate_image_urls],
        help_text=_('List of image URLs')
    )

    location = models.CharField(
        _('location'),
        max_length=30,
        choices=LOCATION_CHOICES,
    )

    specific_location = models.CharField(
        _('specific location'),
        max_length=200,
        blank=True,
        default='',
    )

    condition = models.CharField(
        _('condition'),
        max_length=10,
        choices=CONDITION_CHOICES,
        blank=True,
        default='',
    )

    rental_start = models.DateTimeField(_('rental start'), null=True, blank=True)

    rental_end = models.DateTimeField(_('rental end'), null=True, blank=True)

    service_type = models.CharField(
        _('service type'),
        max_length=100,
        blank=True,
        default='',
    )

    status = models.CharField(
        _('status'),
        max_length=20,
        choices=ListingStatus.choices,
        default=ListingStatus.AVAILABLE,
        help_text=_('Availability of the listing')
    )

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True,
        help_text=_('Timestamp when the listing was created')
    )

    updated_at = models.DateTimeField(
        _('updated at'),
        auto_now=True,
        help_text=_('Timestamp when the listing was last updated')
    )

    class Meta:
        verbose_name = _('listing')
        verbose_name_plural = _('listings')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', '-created_at'], name='listing_status_created_idx'),
            models.Index(fields=['category', 'status'], name='listing_category_status_idx'),
            models.Index(fields=['location'], name='listing_location_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(price__gte=0),
                name='listing_price_non_negative'
            ),
        ]

    def __str__(self):
        """Return title as string representation."""
        return self.title

    def clean(self):
        """
        Validate category-specific fields.

        Ensures:
        - Title and description are not blank
        - Goods have a condition
        - Rentals have a rental period that ends after it starts
        - Services have a service type

        Raises:
            ValidationError: If validation fails
        """
        super().clean()

        if not self.title or not self.title.strip():
            raise ValidationError({
                'title': _('Title cannot be empty.')
            })

        if not self.description or not self.description.strip():
            raise ValidationError({
                'description': _('Description cannot be empty.')
            })

        if self.category == self.CATEGORY_GOODS and not self.condition:
            raise ValidationError({
                'condition': _('Condition is required for goods.')
            })

        if self.category == self.CATEGORY_RENTALS:
            if not self.rental_start or not self.rental_end:
                raise ValidationError({
                    'rental_end': _('Rental period start and end are required for rentals.')
                })
            if self.rental_end <= self.rental_start:
                raise ValidationError({
                    'rental_end': _('Rental period must end after it starts.')
                })

        if self.category == self.CATEGORY_SERVICES and not (self.service_type or '').strip():
            raise ValidationError({
                'service_type': _('Service type is required for services.')
            })

    def save(self, *args, **kwargs):
        """
        Override save to ensure validation.

        Args:
            *args: Positional arguments
            **kwargs: Keyword arguments
        """
        self.full_clean()
        super().save(*args, **kwargs)

    def is_available(self):
        """Return True if the listing can currently be reserved."""
        return self.status == ListingStatus.AVAILABLE


class Transaction(models.Model):
    """
    A buyer's claim on a listing, from reservation to completion or cancellation.

    Fields:
    - buyer, seller, listing: Parties and subject (immutable)
    - amount: Listing price captured at reservation time
    - status: Initiated, Reserved, Completed or Cancelled
    - payment_status: Pending, Completed or Cancelled (mirrors status)
    - reservation_date, completion_date, cancellation_date: Lifecycle timestamps
    - cancellation_reason: Free text supplied on cancel

    Rows are created and mutated only by the lifecycle coordinator. Completed and
    cancelled transactions are never modified again.
    """

    buyer = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='purchases',
        help_text=_('User buying the listing')
    )

    seller = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='sales',
        help_text=_('User selling the listing')
    )

    listing = models.ForeignKey(
        Listing,
        on_delete=models.CASCADE,
        related_name='transactions',
        help_text=_('Listing being transacted')
    )

    amount = models.DecimalField(
        _('amount'),
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))],
        help_text=_('Listing price at the time of reservation')
    )

    status = models.CharField(
        _('status'),
        max_length=20,
        choices=TransactionStatus.choices,
        default=TransactionStatus.INITIATED,
    )

    payment_status = models.CharField(
        _('payment status'),
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )

    reservation_date = models.DateTimeField(
        _('reservation date'),
        default=timezone.now,
    )

    completion_date = models.DateTimeField(_('completion date'), null=True, blank=True)

    cancellation_date = models.DateTimeField(_('cancellation date'), null=True, blank=True)

    cancellation_reason = models.CharField(
        _('cancellation reason'),
        max_length=500,
        blank=True,
        default='',
    )

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)

    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    class Meta:
        verbose_name = _('transaction')
        verbose_name_plural = _('transactions')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['buyer', 'status'], name='txn_buyer_status_idx'),
            models.Index(fields=['seller', 'status'], name='txn_seller_status_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=~models.Q(buyer=models.F('seller')),
                name='transaction_buyer_is_not_seller'
            ),
            models.UniqueConstraint(
                fields=['listing'],
                condition=models.Q(status__in=ACTIVE_TRANSACTION_STATUSES),
                name='one_active_transaction_per_listing'
            ),
        ]

    def __str__(self):
        """Return meaningful string representation."""
        return f"Transaction #{self.pk}: {self.listing_id} ({self.status})"

    def is_party(self, user_id):
        """Return True if ``user_id`` is the buyer or the seller."""
        return user_id in (self.buyer_id, self.seller_id)

    def other_party_id(self, user_id):
        """Return the id of the counterpart of ``user_id``."""
        return self.seller_id if user_id == self.buyer_id else self.buyer_id


class Review(models.Model):
    """
    Review left by one party of a completed transaction about the other.

    Fields:
    - reviewer: User writing the review
    - reviewed_user: User receiving the review
    - transaction: Completed transaction being reviewed
    - listing: Listing of that transaction
    - rating: Integer rating from 1 to 5
    - comment: Optional feedback (max 500 characters)
    - type: BuyerToSeller or SellerToBuyer

    Saving or deleting a review triggers the rating aggregator through signals.
    """

    reviewer = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='reviews_given',
        help_text=_('User writing the review')
    )

    reviewed_user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='reviews_received',
        help_text=_('User receiving the review')
    )

    transaction = models.ForeignKey(
        Transaction,
        on_delete=models.CASCADE,
        related_name='reviews',
        help_text=_('Transaction being reviewed')
    )

    listing = models.ForeignKey(
        Listing,
        on_delete=models.CASCADE,
        related_name='reviews',
    )

    rating = models.PositiveSmallIntegerField(
        _('rating'),
        validators=[
            MinValueValidator(1, message=_('Rating must be at least 1.')),
            MaxValueValidator(5, message=_('Rating must be at most 5.'))
        ],
        help_text=_('Rating from 1 to 5 stars')
    )

    comment = models.TextField(
        _('comment'),
        blank=True,
        default='',
        validators=[MaxLengthValidator(500)],
    )

    type = models.CharField(
        _('type'),
        max_length=20,
        choices=ReviewType.choices,
    )

    created_at = models.DateTimeField(
        _('created at'),
        default=timezone.now,
        help_text=_('Timestamp when the review was created')
    )

    updated_at = models.DateTimeField(
        _('updated at'),
        auto_now=True,
        help_text=_('Timestamp when the review was last updated')
    )

    class Meta:
        verbose_name = _('review')
        verbose_name_plural = _('reviews')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['reviewed_user', '-created_at'], name='review_user_created_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['reviewer', 'transaction'],
                name='one_review_per_reviewer_per_transaction'
            ),
            models.CheckConstraint(
                condition=models.Q(rating__gte=1, rating__lte=5),
                name='review_rating_between_1_and_5'
            ),
        ]

    def __str__(self):
        """Return meaningful string representation."""
        return f"Review by {self.reviewer_id} for {self.reviewed_user_id} - {self.rating}★"
