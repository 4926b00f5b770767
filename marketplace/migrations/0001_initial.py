import django.contrib.auth.models
import django.contrib.auth.validators
import django.core.validators
import django.db.models.deletion
import django.utils.timezone
import marketplace.validators
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('username', models.CharField(error_messages={'unique': 'A user with that username already exists.'}, help_text='Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.', max_length=150, unique=True, validators=[django.contrib.auth.validators.UnicodeUsernameValidator()], verbose_name='username')),
                ('first_name', models.CharField(blank=True, max_length=150, verbose_name='first name')),
                ('last_name', models.CharField(blank=True, max_length=150, verbose_name='last name')),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether the user can log into this admin site.', verbose_name='staff status')),
                ('is_active', models.BooleanField(default=True, help_text='Designates whether this user should be treated as active. Unselect this instead of deleting accounts.', verbose_name='active')),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('email', models.EmailField(error_messages={'unique': 'A user with that email already exists.'}, help_text='Required. Enter a valid email address.', max_length=254, unique=True, verbose_name='email address')),
                ('phone_number', models.CharField(blank=True, default='', help_text='Optional. Enter phone number in international format.', max_length=20, validators=[marketplace.validators.validate_phone_number], verbose_name='phone number')),
                ('department', models.CharField(blank=True, default='', help_text='Academic department.', max_length=200, verbose_name='department')),
                ('role', models.CharField(choices=[('user', 'User'), ('admin', 'Admin')], default='user', help_text='Admins may moderate listings and reviews.', max_length=10, verbose_name='role')),
                ('status', models.CharField(choices=[('active', 'Active'), ('suspended', 'Suspended'), ('banned', 'Banned')], default='active', max_length=10, verbose_name='account status')),
                ('is_verified', models.BooleanField(default=False, help_text='Indicates whether the campus account has been verified.', verbose_name='verified status')),
                ('rating', models.DecimalField(decimal_places=1, default=Decimal('0.0'), help_text='Average of all ratings received. Maintained automatically.', max_digits=2, validators=[django.core.validators.MinValueValidator(Decimal('0.0'), message='Rating cannot be negative.'), django.core.validators.MaxValueValidator(Decimal('5.0'), message='Rating cannot exceed 5.0.')], verbose_name='rating')),
                ('total_reviews', models.PositiveIntegerField(default=0, help_text='Number of reviews received. Maintained automatically.', verbose_name='total reviews')),
                ('created_at', models.DateTimeField(auto_now_add=True, help_text='Timestamp when the account was created.', verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the account was last updated.', verbose_name='updated at')),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'user',
                'verbose_name_plural': 'users',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['role'], name='user_role_idx'),
                    models.Index(fields=['status'], name='user_status_idx'),
                    models.Index(fields=['is_verified'], name='user_verified_idx'),
                ],
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='Listing',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(help_text='Title of the listing (3-100 characters)', max_length=100, validators=[django.core.validators.MinLengthValidator(3)], verbose_name='title')),
                ('description', models.TextField(help_text='Detailed description (max 1000 characters)', validators=[django.core.validators.MaxLengthValidator(1000)], verbose_name='description')),
                ('price', models.DecimalField(decimal_places=2, help_text='Asking price', max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.00'), message='Price cannot be negative.')], verbose_name='price')),
                ('category', models.CharField(choices=[('Goods', 'Goods'), ('Services', 'Services'), ('Rentals', 'Rentals')], max_length=20, verbose_name='category')),
                ('subcategory', models.CharField(max_length=50, verbose_name='subcategory')),
                ('images', models.JSONField(default=list, help_text='List of image URLs', validators=[marketplace.validators.validate_image_urls], verbose_name='images')),
                ('location', models.CharField(choices=[('Main Campus', 'Main Campus'), ('Engineering Campus', 'Engineering Campus'), ('Science Campus', 'Science Campus'), ('Medical Campus', 'Medical Campus'), ('Other', 'Other')], max_length=30, verbose_name='location')),
                ('specific_location', models.CharField(blank=True, default='', max_length=200, verbose_name='specific location')),
                ('condition', models.CharField(blank=True, choices=[('New', 'New'), ('Like New', 'Like New'), ('Good', 'Good'), ('Fair', 'Fair'), ('Poor', 'Poor')], default='', max_length=10, verbose_name='condition')),
                ('rental_start', models.DateTimeField(blank=True, null=True, verbose_name='rental start')),
                ('rental_end', models.DateTimeField(blank=True, null=True, verbose_name='rental end')),
                ('service_type', models.CharField(blank=True, default='', max_length=100, verbose_name='service type')),
                ('status', models.CharField(choices=[('Available', 'Available'), ('Reserved', 'Reserved'), ('Sold', 'Sold'), ('Hidden', 'Hidden'), ('Removed', 'Removed')], default='Available', help_text='Availability of the listing', max_length=20, verbose_name='status')),
                ('created_at', models.DateTimeField(auto_now_add=True, help_text='Timestamp when the listing was created', verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the listing was last updated', verbose_name='updated at')),
                ('seller', models.ForeignKey(help_text='User selling this listing', on_delete=django.db.models.deletion.CASCADE, related_name='listings', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'listing',
                'verbose_name_plural': 'listings',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status', '-created_at'], name='listing_status_created_idx'),
                    models.Index(fields=['category', 'status'], name='listing_category_status_idx'),
                    models.Index(fields=['location'], name='listing_location_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('price__gte', 0)), name='listing_price_non_negative'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Transaction',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('amount', models.DecimalField(decimal_places=2, help_text='Listing price at the time of reservation', max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))], verbose_name='amount')),
                ('status', models.CharField(choices=[('Initiated', 'Initiated'), ('Reserved', 'Reserved'), ('Completed', 'Completed'), ('Cancelled', 'Cancelled')], default='Initiated', max_length=20, verbose_name='status')),
                ('payment_status', models.CharField(choices=[('Pending', 'Pending'), ('Completed', 'Completed'), ('Cancelled', 'Cancelled')], default='Pending', max_length=20, verbose_name='payment status')),
                ('reservation_date', models.DateTimeField(default=django.utils.timezone.now, verbose_name='reservation date')),
                ('completion_date', models.DateTimeField(blank=True, null=True, verbose_name='completion date')),
                ('cancellation_date', models.DateTimeField(blank=True, null=True, verbose_name='cancellation date')),
                ('cancellation_reason', models.CharField(blank=True, default='', max_length=500, verbose_name='cancellation reason')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
                ('buyer', models.ForeignKey(help_text='User buying the listing', on_delete=django.db.models.deletion.CASCADE, related_name='purchases', to=settings.AUTH_USER_MODEL)),
                ('listing', models.ForeignKey(help_text='Listing being transacted', on_delete=django.db.models.deletion.CASCADE, related_name='transactions', to='marketplace.listing')),
                ('seller', models.ForeignKey(help_text='User selling the listing', on_delete=django.db.models.deletion.CASCADE, related_name='sales', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'transaction',
                'verbose_name_plural': 'transactions',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['buyer', 'status'], name='txn_buyer_status_idx'),
                    models.Index(fields=['seller', 'status'], name='txn_seller_status_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('buyer', models.F('seller')), _negated=True), name='transaction_buyer_is_not_seller'),
                    models.UniqueConstraint(condition=models.Q(('status__in', ('Initiated', 'Reserved'))), fields=('listing',), name='one_active_transaction_per_listing'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Review',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('rating', models.PositiveSmallIntegerField(help_text='Rating from 1 to 5 stars', validators=[django.core.validators.MinValueValidator(1, message='Rating must be at least 1.'), django.core.validators.MaxValueValidator(5, message='Rating must be at most 5.')], verbose_name='rating')),
                ('comment', models.TextField(blank=True, default='', validators=[django.core.validators.MaxLengthValidator(500)], verbose_name='comment')),
                ('type', models.CharField(choices=[('BuyerToSeller', 'Buyer to seller'), ('SellerToBuyer', 'Seller to buyer')], max_length=20, verbose_name='type')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, help_text='Timestamp when the review was created', verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the review was last updated', verbose_name='updated at')),
                ('listing', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='reviews', to='marketplace.listing')),
                ('reviewed_user', models.ForeignKey(help_text='User receiving the review', on_delete=django.db.models.deletion.CASCADE, related_name='reviews_received', to=settings.AUTH_USER_MODEL)),
                ('reviewer', models.ForeignKey(help_text='User writing the review', on_delete=django.db.models.deletion.CASCADE, related_name='reviews_given', to=settings.AUTH_USER_MODEL)),
                ('transaction', models.ForeignKey(help_text='Transaction being reviewed', on_delete=django.db.models.deletion.CASCADE, related_name='reviews', to='marketplace.transaction')),
            ],
            options={
                'verbose_name': 'review',
                'verbose_name_plural': 'reviews',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['reviewed_user', '-created_at'], name='review_user_created_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('reviewer', 'transaction'), name='one_review_per_reviewer_per_transaction'),
                    models.CheckConstraint(condition=models.Q(('rating__gte', 1), ('rating__lte', 5)), name='review_rating_between_1_and_5'),
                ],
            },
        ),
    ]
