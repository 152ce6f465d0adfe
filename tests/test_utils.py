import unittest

from volleyroster.utils import mask_email


class TestMaskEmail(unittest.TestCase):
    def test_mask_email(self):
        self.assertEqual(mask_email("jane.doe@example.com"), "j***@example.com")

    def test_mask_email_without_domain(self):
        self.assertEqual(mask_email("not-an-email"), "not-an-email")


if __name__ == "__main__":
    unittest.main()
