from unittest import mock

from cloudinary.exceptions import Error as CloudinaryError
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import override_settings

from .base import ApiTestCase, make_user


def image(name='photo.png', size=16):
    return SimpleUploadedFile(name, b'\x89PNG' + b'0' * size, content_type='image/png')


def cloudinary_result(public_id='oausconnect/photo', resource_type='image'):
    return {
        'secure_url': f'https://res.cloudinary.com/demo/{resource_type}/upload/{public_id}.png',
        'public_id': public_id,
        'resource_type': resource_type,
    }


@mock.patch('cloudinary.uploader.upload')
class UploadTests(ApiTestCase):

    def setUp(self):
        self.user = make_user('alice')
        self.auth = self._headers(self.user)

    def test_single_upload(self, upload):
        upload.return_value = cloudinary_result()
        response = self.client.post('/upload/single', {'file': image()}, **self.auth)

        self.assertEqual(response.status_code, 200)
        data = response.json()['data']
        self.assertEqual(data['publicId'], 'oausconnect/photo')
        self.assertEqual(data['originalName'], 'photo.png')
        self.assertEqual(data['mimetype'], 'image/png')
        self.assertIn('oausconnect/photo', data['optimizedUrl'])
        self.assertEqual(upload.call_args.kwargs['folder'], 'oausconnect')
        self.assertEqual(upload.call_args.kwargs['resource_type'], 'auto')

    def test_single_upload_without_file(self, upload):
        response = self.client.post('/upload/single', {}, **self.auth)
        self.assertError(response, 400, "No file uploaded")
        upload.assert_not_called()

    def test_disallowed_type(self, upload):
        script = SimpleUploadedFile('run.sh', b'echo hi', content_type='text/x-sh')
        response = self.client.post('/upload/single', {'file': script}, **self.auth)
        self.assertEqual(response.status_code, 400)
        upload.assert_not_called()

    @override_settings(UPLOAD_MAX_FILE_SIZE=10)
    def test_file_too_large(self, upload):
        response = self.client.post('/upload/single', {'file': image(size=64)}, **self.auth)
        self.assertEqual(response.status_code, 400)
        self.assertIn('exceeds', response.json()['message'])

    def test_multiple_upload_limit(self, upload):
        upload.return_value = cloudinary_result()
        files = [image(f'p{i}.png') for i in range(6)]
        response = self.client.post('/upload/multiple', {'files': files}, **self.auth)
        self.assertError(response, 400, "Too many files: at most 5 allowed")

    def test_multiple_upload(self, upload):
        upload.side_effect = [cloudinary_result('oausconnect/a'), cloudinary_result('oausconnect/b')]
        response = self.client.post('/upload/multiple', {'files': [image('a.png'), image('b.png')]}, **self.auth)

        self.assertEqual(response.status_code, 200)
        self.assertEqual([d['publicId'] for d in response.json()['data']], ['oausconnect/a', 'oausconnect/b'])

    def test_avatar_is_saved_on_user(self, upload):
        upload.return_value = cloudinary_result('oausconnect/avatar')
        response = self.client.post('/upload/avatar', {'avatar': image()}, **self.auth)

        self.assertEqual(response.status_code, 200)
        self.user.refresh_from_db()
        self.assertEqual(self.user.avatar, response.json()['data']['url'])

    def test_post_media_groups_by_field(self, upload):
        upload.return_value = cloudinary_result()
        pdf = SimpleUploadedFile('notes.pdf', b'%PDF-1.4', content_type='application/pdf')
        response = self.client.post('/upload/post-media', {'images': [image()], 'documents': [pdf]}, **self.auth)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(sorted(response.json()['data']), ['documents', 'images'])

    def test_post_media_rejects_wrong_kind(self, upload):
        pdf = SimpleUploadedFile('notes.pdf', b'%PDF-1.4', content_type='application/pdf')
        response = self.client.post('/upload/post-media', {'images': [pdf]}, **self.auth)
        self.assertError(response, 400, "notes.pdf is not a valid image")

    def test_cloudinary_failure_is_502(self, upload):
        upload.side_effect = CloudinaryError("quota exceeded")
        response = self.client.post('/upload/single', {'file': image()}, **self.auth)
        self.assertError(response, 502, "Upload failed: quota exceeded")

    @override_settings(CLOUDINARY_STORAGE={'CLOUD_NAME': '', 'API_KEY': '', 'API_SECRET': ''})
    def test_unconfigured_uploads_are_503(self, upload):
        with mock.patch('social.uploads._configured', False):
            response = self.client.post('/upload/single', {'file': image()}, **self.auth)
        self.assertError(response, 503, "File uploads are not configured")

    def test_requires_auth(self, upload):
        response = self.client.post('/upload/single', {'file': image()})
        self.assertEqual(response.status_code, 401)


class DeleteAndOptimizeTests(ApiTestCase):

    def setUp(self):
        self.user = make_user('alice')

    @mock.patch('cloudinary.uploader.destroy', return_value={'result': 'ok'})
    def test_delete_nested_public_id(self, destroy):
        response = self.delete('/upload/delete/oausconnect/photo', user=self.user)

        self.assertEqual(response.status_code, 200)
        destroy.assert_called_once_with('oausconnect/photo')

    @mock.patch('cloudinary.uploader.destroy', return_value={'result': 'not found'})
    def test_delete_missing_asset(self, destroy):
        self.assertError(self.delete('/upload/delete/nope', user=self.user), 404, "File not found")

    def test_optimize(self):
        response = self.get('/upload/optimize/oausconnect/photo', user=self.user,
                            params={'width': '300', 'height': '200', 'format': 'webp'})

        data = response.json()['data']
        self.assertEqual(data['options'], {'width': 300, 'height': 200, 'format': 'webp'})
        self.assertIn('oausconnect/photo', data['optimizedUrl'])
        self.assertTrue(data['optimizedUrl'].startswith('https://res.cloudinary.com/demo/'))

    def test_optimize_rejects_non_integer_width(self):
        response = self.get('/upload/optimize/photo', user=self.user, params={'width': 'wide'})
        self.assertError(response, 400, "width must be an integer")
