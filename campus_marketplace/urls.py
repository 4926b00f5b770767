"""
URL configuration for campus_marketplace project.

The `urlpatterns` list routes URLs to views. For more information please see:
    https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""
from django.contrib import admin
from django.urls import path
from rest_framework_simplejwt.views import (
    TokenObtainPairView,
    TokenRefreshView,
)
from marketplace.views import (
    ListingListCreateView,
    MyListingsView,
    ListingDetailView,
    ListingReserveView,
    ListingModerationView,
    TransactionCreateView,
    MyTransactionsView,
    TransactionDetailView,
    TransactionStatusView,
    TransactionCompleteView,
    TransactionCancelView,
    ReviewCreateView,
    ReviewDetailView,
    UserReviewsView,
    ListingReviewsView,
)


urlpatterns = [
    path('admin/', admin.site.urls),

    # JWT Authentication endpoints
    path('api/token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('api/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),

    # Listing endpoints
    path('api/listings/', ListingListCreateView.as_view(), name='listing_list_create'),
    path('api/listings/my-listings/', MyListingsView.as_view(), name='my_listings'),
    path('api/listings/<int:pk>/', ListingDetailView.as_view(), name='listing_detail'),
    path('api/listings/<int:pk>/reserve/', ListingReserveView.as_view(), name='listing_reserve'),
    path('api/admin/listings/<int:pk>/status/', ListingModerationView.as_view(), name='listing_moderate'),

    # Transaction endpoints
    path('api/transactions/', TransactionCreateView.as_view(), name='transaction_create'),
    path('api/transactions/my-transactions/', MyTransactionsView.as_view(), name='my_transactions'),
    path('api/transactions/<int:pk>/', TransactionDetailView.as_view(), name='transaction_detail'),
    path('api/transactions/<int:pk>/status/', TransactionStatusView.as_view(), name='transaction_status'),
    path('api/transactions/<int:pk>/complete/', TransactionCompleteView.as_view(), name='transaction_complete'),
    path('api/transactions/<int:pk>/cancel/', TransactionCancelView.as_view(), name='transaction_cancel'),

    # Review endpoints
    path('api/reviews/', ReviewCreateView.as_view(), name='review_create'),
    path('api/reviews/<int:pk>/', ReviewDetailView.as_view(), name='review_detail'),
    path('api/reviews/user/<int:user_id>/', UserReviewsView.as_view(), name='user_reviews'),
    path('api/reviews/listing/<int:listing_id>/', ListingReviewsView.as_view(), name='listing_reviews'),
]
