"""
Serializers for the Campus Marketplace REST API.

Serializers validate request shape only. State changes go through
``marketplace.coordinator`` (listings and transactions) and
``marketplace.reviews`` (reviews).
"""

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers

from .lifecycle import ListingStatus, ReviewType, TransactionStatus
from .models import Listing, Review, Transaction, User


class UserSummarySerializer(serializers.ModelSerializer):
    """
    Nested serializer for user information in listing, transaction and review responses.

    Provides essential public details, including the derived rating.
    """

    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'department', 'rating', 'total_reviews']
        read_only_fields = fields


class ListingSummarySerializer(serializers.ModelSerializer):
    """Nested serializer for listing information in transaction and review responses."""

    class Meta:
        model = Listing
        fields = ['id', 'title', 'price', 'images', 'status']
        read_only_fields = fields


# ============================================================================
# Listing Serializers
# ============================================================================

class ListingSerializer(serializers.ModelSerializer):
    """
    Serializer for creating, updating and displaying listings.

    Read-only fields:
    - id, seller, status, created_at, updated_at

    ``status`` can never be written through this serializer; it belongs to the
    lifecycle coordinator.
    """

    # Fields checked by Listing.clean() for category-specific requirements
    CLEAN_FIELDS = [
        'title', 'description', 'category', 'condition',
        'rental_start', 'rental_end', 'service_type',
    ]

    seller = UserSummarySerializer(read_only=True)
    images = serializers.ListField(
        child=serializers.URLField(),
        allow_empty=False,
        max_length=10
    )

    class Meta:
        model = Listing
        fields = [
            'id', 'seller', 'title', 'description', 'price', 'category', 'subcategory',
            'images', 'location', 'specific_location', 'condition', 'rental_start',
            'rental_end', 'service_type', 'status', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'seller', 'status', 'created_at', 'updated_at']

    def validate_price(self, value):
        """
        Validate price is not negative.

        Raises:
            ValidationError: If price is below zero
        """
        if value < 0:
            raise serializers.ValidationError("Price cannot be negative.")
        return value

    def validate(self, attrs):
        """
        Run the model's category rules against the merged instance and input.

        Partial updates are merged onto the current listing before checking,
        so changing only ``category`` still enforces its required fields.
        """
        values = {}
        if self.instance is not None:
            values = {field: getattr(self.instance, field) for field in self.CLEAN_FIELDS}
        values.update({field: attrs[field] for field in self.CLEAN_FIELDS if field in attrs})

        try:
            Listing(**values).clean()
        except DjangoValidationError as exc:
            raise serializers.ValidationError(exc.message_dict)

        return attrs

    def update(self, instance, validated_data):
        """
        Save only the submitted fields.

        A full-row save would also write ``status`` from a possibly stale
        instance, undoing a concurrent reservation.
        """
        for field, value in validated_data.items():
            setattr(instance, field, value)
        instance.save(update_fields=[*validated_data.keys(), 'updated_at'])
        return instance


class ListingModerationSerializer(serializers.Serializer):
    """Request body for moderator listing status changes."""

    status = serializers.ChoiceField(choices=[
        ListingStatus.AVAILABLE,
        ListingStatus.HIDDEN,
        ListingStatus.REMOVED,
    ])
    reason = serializers.CharField(required=False, allow_blank=True, max_length=500)


# ============================================================================
# Transaction Serializers
# ============================================================================

class TransactionSerializer(serializers.ModelSerializer):
    """Read-only representation of a transaction with its parties and listing."""

    buyer = UserSummarySerializer(read_only=True)
    seller = UserSummarySerializer(read_only=True)
    listing = ListingSummarySerializer(read_only=True)

    class Meta:
        model = Transaction
        fields = [
            'id', 'buyer', 'seller', 'listing', 'amount', 'status', 'payment_status',
            'reservation_date', 'completion_date', 'cancellation_date',
            'cancellation_reason', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class ReserveSerializer(serializers.Serializer):
    """Request body for POST /api/transactions/."""

    listing_id = serializers.IntegerField(min_value=1)


class TransactionStatusSerializer(serializers.Serializer):
    """Request body for the seller's status update; only completion is accepted."""

    status = serializers.ChoiceField(
        choices=[TransactionStatus.COMPLETED],
        error_messages={'invalid_choice': 'Invalid status update.'}
    )


class CancelSerializer(serializers.Serializer):
    """Request body for cancellation."""

    reason = serializers.CharField(required=False, allow_blank=True, max_length=500)


# ============================================================================
# Review Serializers
# ============================================================================

class ReviewSerializer(serializers.ModelSerializer):
    """Representation of a review with nested reviewer and reviewed user."""

    reviewer = UserSummarySerializer(read_only=True)
    reviewed_user = UserSummarySerializer(read_only=True)
    transaction_id = serializers.IntegerField(read_only=True)
    listing_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Review
        fields = [
            'id', 'reviewer', 'reviewed_user', 'transaction_id', 'listing_id',
            'rating', 'comment', 'type', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class ReviewCreateSerializer(serializers.Serializer):
    """
    Request body for POST /api/reviews/.

    Fields:
    - transaction_id: Required, completed transaction to review
    - type: Required, BuyerToSeller or SellerToBuyer
    - rating: Required, integer from 1-5
    - comment: Optional, max 500 characters
    """

    transaction_id = serializers.IntegerField(min_value=1)
    type = serializers.ChoiceField(
        choices=ReviewType.choices,
        error_messages={'invalid_choice': 'Invalid review type.'}
    )
    rating = serializers.IntegerField(min_value=1, max_value=5)
    comment = serializers.CharField(required=False, allow_blank=True, max_length=500)


class ReviewUpdateSerializer(serializers.Serializer):
    """
    Request body for PATCH/PUT /api/reviews/<id>/.

    Both fields are optional; at least one must be provided.
    """

    rating = serializers.IntegerField(min_value=1, max_value=5, required=False)
    comment = serializers.CharField(required=False, allow_blank=True, max_length=500)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("Provide a rating or a comment to update.")
        return attrs
