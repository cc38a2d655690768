# Generated migration for shared data contract
# DO NOT MODIFY - this is part of the shared contract

from django.db import migrations, models
import django.db.models.deletion
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('id', models.UUIDField(
                    default=uuid.uuid4,
                    editable=False,
                    primary_key=True,
                    serialize=False
                )),
                ('wallet_address', models.CharField(
                    help_text='Wallet address used as the login credential',
                    max_length=255,
                    unique=True
                )),
                ('reward_points', models.IntegerField(
                    default=0,
                    help_text='Current reward points balance'
                )),
                ('created_at', models.DateTimeField(
                    auto_now_add=True,
                    help_text='When this wallet was first seen'
                )),
            ],
            options={
                'verbose_name': 'User',
                'verbose_name_plural': 'Users',
                'db_table': 'users',
            },
        ),
        migrations.CreateModel(
            name='Tag',
            fields=[
                ('id', models.UUIDField(
                    default=uuid.uuid4,
                    editable=False,
                    primary_key=True,
                    serialize=False
                )),
                ('tag', models.CharField(
                    help_text='Tag label (new tags are stored normalized)',
                    max_length=100
                )),
            ],
            options={
                'verbose_name': 'Tag',
                'verbose_name_plural': 'Tags',
                'db_table': 'tags',
            },
        ),
        migrations.CreateModel(
            name='File',
            fields=[
                ('id', models.UUIDField(
                    default=uuid.uuid4,
                    editable=False,
                    primary_key=True,
                    serialize=False
                )),
                ('filecoin_hash', models.CharField(
                    help_text='Content identifier on the Filecoin network',
                    max_length=255
                )),
                ('file_name', models.CharField(
                    blank=True,
                    help_text='Human-readable file name',
                    max_length=255,
                    null=True
                )),
                ('file_type', models.CharField(
                    help_text='MIME type of the file',
                    max_length=100
                )),
                ('file_size', models.PositiveBigIntegerField(
                    help_text='File size in bytes'
                )),
                ('thumbnail_url', models.URLField(
                    blank=True,
                    help_text='Optional preview image URL',
                    max_length=500,
                    null=True
                )),
                ('description', models.TextField(
                    blank=True,
                    help_text='Free-form description',
                    null=True
                )),
                ('network', models.CharField(
                    help_text='Filecoin network the file lives on (e.g. mainnet)',
                    max_length=50
                )),
                ('upload_date', models.DateTimeField(
                    auto_now_add=True,
                    help_text='When this file was catalogued'
                )),
                ('owner', models.ForeignKey(
                    help_text='User who tagged this file and receives vote rewards',
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name='files',
                    to='contracts.user'
                )),
            ],
            options={
                'verbose_name': 'File',
                'verbose_name_plural': 'Files',
                'db_table': 'files',
                'ordering': ['-upload_date'],
            },
        ),
        migrations.CreateModel(
            name='FileTag',
            fields=[
                ('id', models.BigAutoField(
                    auto_created=True,
                    primary_key=True,
                    serialize=False,
                    verbose_name='ID'
                )),
                ('file', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='file_tags',
                    to='contracts.file'
                )),
                ('tag', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='file_tags',
                    to='contracts.tag'
                )),
            ],
            options={
                'verbose_name': 'File Tag',
                'verbose_name_plural': 'File Tags',
                'db_table': 'file_tags',
            },
        ),
        migrations.CreateModel(
            name='Vote',
            fields=[
                ('id', models.UUIDField(
                    default=uuid.uuid4,
                    editable=False,
                    primary_key=True,
                    serialize=False
                )),
                ('vote_type', models.SmallIntegerField(
                    choices=[(1, 'Upvote'), (-1, 'Downvote')],
                    help_text='+1 for upvote, -1 for downvote'
                )),
                ('created_at', models.DateTimeField(
                    auto_now_add=True
                )),
                ('file', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='votes',
                    to='contracts.file'
                )),
                ('user', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='votes',
                    to='contracts.user'
                )),
            ],
            options={
                'verbose_name': 'Vote',
                'verbose_name_plural': 'Votes',
                'db_table': 'votes',
            },
        ),
        migrations.CreateModel(
            name='Comment',
            fields=[
                ('id', models.UUIDField(
                    default=uuid.uuid4,
                    editable=False,
                    primary_key=True,
                    serialize=False
                )),
                ('comment', models.TextField()),
                ('created_at', models.DateTimeField(
                    auto_now_add=True
                )),
                ('file', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='comments',
                    to='contracts.file'
                )),
                ('user', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='comments',
                    to='contracts.user'
                )),
            ],
            options={
                'verbose_name': 'Comment',
                'verbose_name_plural': 'Comments',
                'db_table': 'comments',
                'ordering': ['created_at'],
            },
        ),
        migrations.CreateModel(
            name='Report',
            fields=[
                ('id', models.UUIDField(
                    default=uuid.uuid4,
                    editable=False,
                    primary_key=True,
                    serialize=False
                )),
                ('report_reason', models.TextField(
                    blank=True,
                    null=True
                )),
                ('created_at', models.DateTimeField(
                    auto_now_add=True
                )),
                ('file', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='reports',
                    to='contracts.file'
                )),
                ('user', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='reports',
                    to='contracts.user'
                )),
            ],
            options={
                'verbose_name': 'Report',
                'verbose_name_plural': 'Reports',
                'db_table': 'reports',
                'ordering': ['-created_at'],
            },
        ),
        migrations.AddIndex(
            model_name='file',
            index=models.Index(fields=['file_name'], name='file_name_idx'),
        ),
        migrations.AddIndex(
            model_name='file',
            index=models.Index(fields=['file_type'], name='file_type_idx'),
        ),
        migrations.AddIndex(
            model_name='file',
            index=models.Index(fields=['upload_date'], name='file_upload_date_idx'),
        ),
        migrations.AddIndex(
            model_name='file',
            index=models.Index(fields=['filecoin_hash'], name='file_filecoin_hash_idx'),
        ),
        migrations.AddIndex(
            model_name='tag',
            index=models.Index(fields=['tag'], name='tag_label_idx'),
        ),
        migrations.AddConstraint(
            model_name='filetag',
            constraint=models.UniqueConstraint(fields=('file', 'tag'), name='unique_file_tag'),
        ),
        migrations.AddConstraint(
            model_name='vote',
            constraint=models.UniqueConstraint(fields=('file', 'user'), name='unique_vote_per_user_file'),
        ),
        migrations.AddIndex(
            model_name='vote',
            index=models.Index(fields=['file', 'vote_type'], name='vote_file_type_idx'),
        ),
    ]
