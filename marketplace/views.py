"""
REST API views for the Campus Marketplace.

Views authenticate the caller, validate request bodies, and delegate every
listing/transaction state change to ``marketplace.coordinator`` and every
review mutation to ``marketplace.reviews``. Domain errors raised there are
turned into HTTP responses by ``marketplace.exceptions.marketplace_exception_handler``.
"""

import logging

from django.db import transaction
from django.db.models import Q
from rest_framework import generics, status
from rest_framework.generics import ListAPIView
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from . import reviews as review_service
from .coordinator import coordinator
from .exceptions import Conflict, Forbidden, NotFound
from .lifecycle import ListingStatus
from .models import Listing, Review, Transaction
from .permissions import IsListingSellerOrReadOnly, IsModerator, IsVerifiedUser
from .serializers import (
    CancelSerializer,
    ListingModerationSerializer,
    ListingSerializer,
    ReserveSerializer,
    ReviewCreateSerializer,
    ReviewSerializer,
    ReviewUpdateSerializer,
    TransactionSerializer,
    TransactionStatusSerializer,
)

logger = logging.getLogger(__name__)


class ClientIPMixin:
    """Adds ``get_client_ip`` for audit logging."""

    def get_client_ip(self, request):
        """
        Get client IP address from request.
        Handles proxy headers for accurate IP detection.
        """
        x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
        if x_forwarded_for:
            ip = x_forwarded_for.split(',')[0]
        else:
            ip = request.META.get('REMOTE_ADDR')
        return ip


def _transaction_queryset():
    return Transaction.objects.select_related('buyer', 'seller', 'listing')


# ============================================================================
# Listing Views
# ============================================================================

class ListingListCreateView(ClientIPMixin, generics.ListCreateAPIView):
    """
    API endpoint for browsing and creating listings.

    GET /api/listings/
    Public. Query parameters:
    - category: Goods, Services or Rentals
    - location: Campus location
    - min_price / max_price: Price range (inclusive)
    - page: Page number

    POST /api/listings/
    Headers: Authorization: Bearer <access_token>
    Requires a verified account. The listing is created Available and owned
    by the caller.
    """
    serializer_class = ListingSerializer

    def get_permissions(self):
        if self.request.method == 'POST':
            return [IsAuthenticated(), IsVerifiedUser()]
        return [AllowAny()]

    def get_queryset(self):
        params = self.request.query_params
        queryset = Listing.objects.select_related('seller').filter(status=ListingStatus.AVAILABLE)

        if params.get('category'):
            queryset = queryset.filter(category=params['category'])
        if params.get('location'):
            queryset = queryset.filter(location=params['location'])
        if params.get('min_price'):
            queryset = queryset.filter(price__gte=params['min_price'])
        if params.get('max_price'):
            queryset = queryset.filter(price__lte=params['max_price'])

        return queryset

    def perform_create(self, serializer):
        listing = serializer.save(seller=self.request.user)
        logger.info(
            f"Listing created. Listing ID: {listing.id}, "
            f"Seller: {self.request.user.email} (ID: {self.request.user.id}), "
            f"IP: {self.get_client_ip(self.request)}"
        )


class MyListingsView(ListAPIView):
    """
    API endpoint listing every listing owned by the caller, in any status.

    GET /api/listings/my-listings/
    """
    serializer_class = ListingSerializer
    permission_classes = [IsAuthenticated, IsVerifiedUser]
    pagination_class = None

    def get_queryset(self):
        return Listing.objects.select_related('seller').filter(seller=self.request.user)


class ListingDetailView(ClientIPMixin, generics.RetrieveUpdateDestroyAPIView):
    """
    API endpoint for a single listing.

    GET /api/listings/<id>/      Public
    PUT/PATCH /api/listings/<id>/ Seller only
    DELETE /api/listings/<id>/   Seller only

    Edits and deletion are allowed only while the listing is Available and
    has no active transaction; otherwise 409 Conflict.
    """
    queryset = Listing.objects.select_related('seller')
    serializer_class = ListingSerializer

    def get_permissions(self):
        if self.request.method in ('GET', 'HEAD', 'OPTIONS'):
            return [AllowAny()]
        return [IsAuthenticated(), IsVerifiedUser(), IsListingSellerOrReadOnly()]

    def _lock_mutable_listing(self, listing_id):
        listing = Listing.objects.select_for_update().get(pk=listing_id)
        if listing.status != ListingStatus.AVAILABLE or coordinator.has_active_transaction(listing_id):
            logger.warning(
                f"Blocked change to listing {listing_id} in status {listing.status}. "
                f"User: {self.request.user.id}, IP: {self.get_client_ip(self.request)}"
            )
            raise Conflict('Cannot change a listing that is reserved, sold or has an active transaction.')
        return listing

    def perform_update(self, serializer):
        with transaction.atomic():
            serializer.instance = self._lock_mutable_listing(serializer.instance.pk)
            serializer.save()

    def perform_destroy(self, instance):
        with transaction.atomic():
            listing = self._lock_mutable_listing(instance.pk)
            listing.delete()
        logger.info(
            f"Listing deleted. Listing ID: {instance.pk}, User: {self.request.user.id}, "
            f"IP: {self.get_client_ip(self.request)}"
        )


class ListingReserveView(APIView):
    """
    API endpoint for reserving a listing.

    POST /api/listings/<id>/reserve/
    Headers: Authorization: Bearer <access_token>

    Success response (200):
    {
        "message": "Listing reserved successfully",
        "transaction": {...},
        "listing": {...}
    }

    Error responses:
    - 404: Listing not found
    - 409: Listing is not available (including losing a race to another buyer)
    - 400: Caller is the seller
    """
    permission_classes = [IsAuthenticated, IsVerifiedUser]

    def post(self, request, pk, *args, **kwargs):
        txn = coordinator.reserve(pk, request.user.pk)
        txn = _transaction_queryset().get(pk=txn.pk)
        return Response(
            {
                'message': 'Listing reserved successfully',
                'transaction': TransactionSerializer(txn).data,
                'listing': ListingSerializer(txn.listing).data,
            },
            status=status.HTTP_200_OK
        )


class ListingModerationView(APIView):
    """
    API endpoint for moderators to hide, remove or restore a listing.

    PUT /api/admin/listings/<id>/status/
    Request body: {"status": "Hidden", "reason": "Prohibited item"}
    """
    permission_classes = [IsAuthenticated, IsModerator]

    def put(self, request, pk, *args, **kwargs):
        serializer = ListingModerationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        listing = coordinator.moderate_listing(
            pk,
            serializer.validated_data['status'],
            reason=serializer.validated_data.get('reason'),
        )
        logger.info(
            f"Moderator {request.user.email} (ID: {request.user.id}) set listing {pk} to {listing.status}"
        )
        return Response(
            {
                'message': f'Listing status updated to {listing.status}',
                'listing': ListingSerializer(listing).data,
            },
            status=status.HTTP_200_OK
        )


# ============================================================================
# Transaction Views
# ============================================================================

class TransactionCreateView(APIView):
    """
    API endpoint for creating a transaction by reserving a listing.

    POST /api/transactions/
    Request body: {"listing_id": 1}

    Success response (201): the Reserved transaction.
    """
    permission_classes = [IsAuthenticated, IsVerifiedUser]

    def post(self, request, *args, **kwargs):
        serializer = ReserveSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        txn = coordinator.reserve(serializer.validated_data['listing_id'], request.user.pk)
        return Response(
            TransactionSerializer(_transaction_queryset().get(pk=txn.pk)).data,
            status=status.HTTP_201_CREATED
        )


class MyTransactionsView(ListAPIView):
    """
    API endpoint listing the caller's transactions as buyer or seller.

    GET /api/transactions/my-transactions/
    """
    serializer_class = TransactionSerializer
    permission_classes = [IsAuthenticated, IsVerifiedUser]
    pagination_class = None

    def get_queryset(self):
        user = self.request.user
        return _transaction_queryset().filter(Q(buyer=user) | Q(seller=user))


class TransactionDetailView(APIView):
    """
    API endpoint for a single transaction.

    GET /api/transactions/<id>/
    Visible to the buyer, the seller and moderators.
    """
    permission_classes = [IsAuthenticated, IsVerifiedUser]

    def get(self, request, pk, *args, **kwargs):
        try:
            txn = _transaction_queryset().get(pk=pk)
        except Transaction.DoesNotExist:
            raise NotFound('Transaction not found.') from None

        if not txn.is_party(request.user.pk) and not request.user.is_moderator():
            raise Forbidden('Not authorized to view this transaction.')

        return Response(TransactionSerializer(txn).data)


class TransactionStatusView(APIView):
    """
    API endpoint for the seller to mark a transaction as completed.

    PUT /api/transactions/<id>/status/
    Request body: {"status": "Completed"}
    """
    permission_classes = [IsAuthenticated, IsVerifiedUser]

    def put(self, request, pk, *args, **kwargs):
        serializer = TransactionStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        txn = coordinator.complete_by_seller(pk, request.user.pk)
        return Response({
            'message': 'Transaction marked as completed',
            'transaction': TransactionSerializer(_transaction_queryset().get(pk=txn.pk)).data,
        })


class TransactionCompleteView(APIView):
    """
    API endpoint for the buyer to confirm a transaction.

    PUT /api/transactions/<id>/complete/
    """
    permission_classes = [IsAuthenticated, IsVerifiedUser]

    def put(self, request, pk, *args, **kwargs):
        txn = coordinator.complete_by_buyer(pk, request.user.pk)
        return Response({
            'message': 'Transaction completed',
            'transaction': TransactionSerializer(_transaction_queryset().get(pk=txn.pk)).data,
        })


class TransactionCancelView(APIView):
    """
    API endpoint for either party to cancel a transaction.

    PUT /api/transactions/<id>/cancel/
    Request body: {"reason": "Changed my mind"}   (optional)
    """
    permission_classes = [IsAuthenticated, IsVerifiedUser]

    def put(self, request, pk, *args, **kwargs):
        serializer = CancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        txn = coordinator.cancel(pk, request.user.pk, reason=serializer.validated_data.get('reason'))
        return Response({
            'message': 'Transaction cancelled',
            'transaction': TransactionSerializer(_transaction_queryset().get(pk=txn.pk)).data,
        })


# ============================================================================
# Review Views
# ============================================================================

def _review_queryset():
    return Review.objects.select_related('reviewer', 'reviewed_user')


class ReviewCreateView(APIView):
    """
    API endpoint for creating reviews.

    POST /api/reviews/
    Request body: {
        "transaction_id": 12,
        "type": "BuyerToSeller",
        "rating": 5,
        "comment": "Smooth handover"
    }

    Error responses:
    - 404: Transaction not found
    - 403: Caller did not take part in the transaction
    - 409: Caller already reviewed this transaction
    - 400: Transaction not completed, or review type does not match caller's role
    """
    permission_classes = [IsAuthenticated, IsVerifiedUser]

    def post(self, request, *args, **kwargs):
        serializer = ReviewCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        review = review_service.submit_review(
            request.user.pk,
            data['transaction_id'],
            data['type'],
            data['rating'],
            comment=data.get('comment'),
        )
        return Response(
            ReviewSerializer(_review_queryset().get(pk=review.pk)).data,
            status=status.HTTP_201_CREATED
        )


class ReviewDetailView(APIView):
    """
    API endpoint for retrieving, updating and deleting a review.

    GET /api/reviews/<id>/          Public
    PATCH/PUT /api/reviews/<id>/    Author only, within 7 days of creation
    DELETE /api/reviews/<id>/       Author or moderator
    """

    def get_permissions(self):
        if self.request.method == 'GET':
            return [AllowAny()]
        return [IsAuthenticated(), IsVerifiedUser()]

    def get(self, request, pk, *args, **kwargs):
        try:
            review = _review_queryset().get(pk=pk)
        except Review.DoesNotExist:
            raise NotFound('Review not found.') from None
        return Response(ReviewSerializer(review).data)

    def patch(self, request, pk, *args, **kwargs):
        serializer = ReviewUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        review = review_service.update_review(
            pk,
            request.user.pk,
            rating=serializer.validated_data.get('rating'),
            comment=serializer.validated_data.get('comment'),
        )
        return Response(ReviewSerializer(_review_queryset().get(pk=review.pk)).data)

    def put(self, request, pk, *args, **kwargs):
        return self.patch(request, pk, *args, **kwargs)

    def delete(self, request, pk, *args, **kwargs):
        review_service.delete_review(pk, request.user.pk)
        return Response(status=status.HTTP_204_NO_CONTENT)


class UserReviewsView(ListAPIView):
    """
    API endpoint listing reviews received by a user, newest first.

    GET /api/reviews/user/<user_id>/
    """
    serializer_class = ReviewSerializer
    permission_classes = [AllowAny]

    def get_queryset(self):
        return _review_queryset().filter(reviewed_user_id=self.kwargs['user_id'])


class ListingReviewsView(ListAPIView):
    """
    API endpoint listing reviews attached to a listing, newest first.

    GET /api/reviews/listing/<listing_id>/
    """
    serializer_class = ReviewSerializer
    permission_classes = [AllowAny]

    def get_queryset(self):
        return _review_queryset().filter(listing_id=self.kwargs['listing_id'])
