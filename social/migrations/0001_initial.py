import django.contrib.auth.models
import django.contrib.auth.validators
import django.db.models.deletion
import django.db.models.functions.text
import django.utils.timezone
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
                ('email', models.EmailField(help_text='Unique email address used for login and notifications', max_length=254, unique=True)),
                ('bio', models.TextField(blank=True, help_text='Profile biography or description', max_length=500)),
                ('interests', models.JSONField(blank=True, default=list, help_text='List of interest tags')),
                ('dob', models.DateField(blank=True, help_text='Date of birth', null=True)),
                ('facebook', models.CharField(blank=True, help_text='Facebook profile handle or URL', max_length=200)),
                ('phone', models.CharField(blank=True, help_text='Contact phone number', max_length=20)),
                ('avatar', models.URLField(blank=True, help_text='Avatar image URL (Cloudinary)', max_length=500)),
                ('email_verified', models.BooleanField(default=False, help_text='True once the user followed the verification link')),
                ('reset_password_token', models.CharField(blank=True, help_text='SHA-256 digest of the password reset token', max_length=64, null=True)),
                ('reset_password_expires', models.DateTimeField(blank=True, help_text='Password reset token expiry', null=True)),
                ('email_verification_token', models.CharField(blank=True, help_text='SHA-256 digest of the email verification token', max_length=64, null=True)),
                ('email_verification_expires', models.DateTimeField(blank=True, help_text='Email verification token expiry', null=True)),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Last profile update')),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'user',
                'verbose_name_plural': 'users',
                'abstract': False,
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='Community',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(help_text='Community name', max_length=50, unique=True)),
                ('description', models.TextField(blank=True, help_text='Community description', max_length=500)),
                ('member_count', models.PositiveIntegerField(default=0, help_text='Number of members')),
                ('avatar', models.URLField(blank=True, help_text='Avatar image URL', max_length=500)),
                ('banner', models.URLField(blank=True, help_text='Banner image URL', max_length=500)),
                ('rules', models.JSONField(blank=True, default=list, help_text='Community rules')),
                ('tags', models.JSONField(blank=True, default=list, help_text='Community tags')),
                ('category', models.CharField(blank=True, help_text='Community category', max_length=50)),
                ('is_private', models.BooleanField(default=False, help_text='Private community')),
                ('is_active', models.BooleanField(default=True, help_text='False once the organizer deleted the community')),
                ('created_at', models.DateTimeField(auto_now_add=True, help_text='Creation timestamp')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Last update timestamp')),
                ('members', models.ManyToManyField(blank=True, help_text='Community members', related_name='communities', to=settings.AUTH_USER_MODEL)),
                ('moderators', models.ManyToManyField(blank=True, help_text='Community moderators', related_name='moderated_communities', to=settings.AUTH_USER_MODEL)),
                ('organizer', models.ForeignKey(help_text='User who created and owns the community', on_delete=django.db.models.deletion.CASCADE, related_name='organized_communities', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name_plural': 'communities',
                'ordering': ['-created_at'],
            },
        ),
        migrations.AddConstraint(
            model_name='community',
            constraint=models.UniqueConstraint(django.db.models.functions.text.Lower('name'), name='community_name_ci_unique'),
        ),
        migrations.CreateModel(
            name='Content',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('upvotes', models.PositiveIntegerField(default=0, help_text='Number of upvotes (mirrors upvoted_by)')),
                ('downvotes', models.PositiveIntegerField(default=0, help_text='Number of downvotes (mirrors downvoted_by)')),
                ('title', models.CharField(help_text='Content title', max_length=200)),
                ('body', models.TextField(help_text='Content text')),
                ('tags', models.JSONField(blank=True, default=list, help_text='Tag strings')),
                ('media', models.JSONField(blank=True, default=list, help_text='Uploaded media descriptors')),
                ('is_public', models.BooleanField(default=True, help_text='Listed in the public feed')),
                ('views', models.PositiveIntegerField(default=0, help_text='Number of detail views')),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, help_text='Creation timestamp')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Last edit timestamp')),
                ('author', models.ForeignKey(help_text='Author of this content', on_delete=django.db.models.deletion.CASCADE, related_name='contents', to=settings.AUTH_USER_MODEL)),
                ('community', models.ForeignKey(blank=True, help_text='Community this content was posted in', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='contents', to='social.community')),
                ('downvoted_by', models.ManyToManyField(blank=True, help_text='Users who downvoted', related_name='downvoted_contents', to=settings.AUTH_USER_MODEL)),
                ('upvoted_by', models.ManyToManyField(blank=True, help_text='Users who upvoted', related_name='upvoted_contents', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='Comment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('upvotes', models.PositiveIntegerField(default=0, help_text='Number of upvotes (mirrors upvoted_by)')),
                ('downvotes', models.PositiveIntegerField(default=0, help_text='Number of downvotes (mirrors downvoted_by)')),
                ('body', models.TextField(help_text='Comment text', max_length=1000)),
                ('created_at', models.DateTimeField(auto_now_add=True, help_text='Creation timestamp')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Last edit timestamp')),
                ('author', models.ForeignKey(help_text='Comment author', on_delete=django.db.models.deletion.CASCADE, related_name='comments', to=settings.AUTH_USER_MODEL)),
                ('content', models.ForeignKey(help_text='Content being commented on', on_delete=django.db.models.deletion.CASCADE, related_name='comments', to='social.content')),
                ('downvoted_by', models.ManyToManyField(blank=True, help_text='Users who downvoted', related_name='downvoted_comments', to=settings.AUTH_USER_MODEL)),
                ('parent', models.ForeignKey(blank=True, help_text='Parent comment for nested replies', null=True, on_delete=django.db.models.deletion.CASCADE, related_name='replies', to='social.comment')),
                ('upvoted_by', models.ManyToManyField(blank=True, help_text='Users who upvoted', related_name='upvoted_comments', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='Chat',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('chat_type', models.CharField(choices=[('direct', 'Direct'), ('group', 'Group')], default='direct', help_text='Direct message or group chat', max_length=10)),
                ('chat_name', models.CharField(blank=True, help_text='Group chat name', max_length=100)),
                ('chat_description', models.TextField(blank=True, help_text='Group chat description', max_length=500)),
                ('chat_avatar', models.URLField(blank=True, help_text='Group chat avatar URL', max_length=500)),
                ('direct_key', models.CharField(blank=True, help_text='Unordered participant pair for direct chats', max_length=64, null=True, unique=True)),
                ('last_message_content', models.TextField(blank=True, help_text='Latest message preview')),
                ('last_message_at', models.DateTimeField(blank=True, db_index=True, help_text='Timestamp of the latest message', null=True)),
                ('is_active', models.BooleanField(default=True, help_text='Listed for participants')),
                ('created_at', models.DateTimeField(auto_now_add=True, help_text='Creation timestamp')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Last activity timestamp')),
                ('admin_users', models.ManyToManyField(blank=True, help_text='Group admins', related_name='administered_chats', to=settings.AUTH_USER_MODEL)),
                ('created_by', models.ForeignKey(help_text='User who created the chat', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_chats', to=settings.AUTH_USER_MODEL)),
                ('last_message_sender', models.ForeignKey(blank=True, help_text='Sender of the latest message', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('participants', models.ManyToManyField(help_text='Chat participants', related_name='chats', to=settings.AUTH_USER_MODEL)),
            ],
        ),
        migrations.CreateModel(
            name='Message',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('content', models.TextField(blank=True, help_text='Message text')),
                ('message_type', models.CharField(choices=[('text', 'Text'), ('image', 'Image'), ('file', 'File')], default='text', help_text='Kind of message', max_length=10)),
                ('file_url', models.URLField(blank=True, help_text='Attachment URL', max_length=500)),
                ('file_name', models.CharField(blank=True, help_text='Attachment original filename', max_length=255)),
                ('is_deleted', models.BooleanField(default=False, help_text='Soft-deleted by its sender')),
                ('edited_at', models.DateTimeField(blank=True, help_text='Last edit timestamp', null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, help_text='Send timestamp')),
                ('chat', models.ForeignKey(help_text='Chat this message belongs to', on_delete=django.db.models.deletion.CASCADE, related_name='messages', to='social.chat')),
                ('sender', models.ForeignKey(help_text='Message author', on_delete=django.db.models.deletion.CASCADE, related_name='sent_messages', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['created_at'],
            },
        ),
        migrations.CreateModel(
            name='MessageRead',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('read_at', models.DateTimeField(auto_now_add=True, help_text='When the message was read')),
                ('message', models.ForeignKey(help_text='Message that was read', on_delete=django.db.models.deletion.CASCADE, related_name='read_receipts', to='social.message')),
                ('user', models.ForeignKey(help_text='Reader', on_delete=django.db.models.deletion.CASCADE, related_name='message_reads', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'unique_together': {('message', 'user')},
            },
        ),
    ]
