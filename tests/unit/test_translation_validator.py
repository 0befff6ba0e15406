import os
import tempfile
import unittest

from razor_localizer.translation_validator import (
    check_encoding_and_mojibake,
    check_key_coverage,
    check_placeholder_parity,
)


class TestTranslationValidator(unittest.TestCase):
    def test_check_key_coverage(self):
        base_keys = {'Login.welcome', 'Button.Save', 'Menu.Customers'}
        target_keys = {'Login.welcome', 'Menu.Customers', 'Button.Delete'}

        missing, stale = check_key_coverage(base_keys, target_keys)

        self.assertEqual(missing, {'Button.Save'})
        self.assertEqual(stale, {'Button.Delete'})

    def test_check_key_coverage_no_diff(self):
        missing, stale = check_key_coverage(['Button.Save'], ('Button.Save',))

        self.assertEqual(missing, set())
        self.assertEqual(stale, set())

    def test_placeholder_parity_success(self):
        self.assertTrue(check_placeholder_parity("Hello {0}, welcome to {1}.", "Hallo {0}, willkommen bei {1}."))

    def test_placeholder_parity_missing_placeholder(self):
        self.assertFalse(check_placeholder_parity("Hello {0}, welcome to {1}.", "Hallo, willkommen bei {1}."))

    def test_placeholder_parity_reordered_placeholders(self):
        # Reordering is common in translations
        self.assertTrue(check_placeholder_parity("First {0}, then {1}.", "Zuerst {1}, dann {0}."))

    def test_placeholder_parity_different_placeholders(self):
        self.assertFalse(check_placeholder_parity("Hello {0}.", "Hallo {name}."))

    def test_placeholder_parity_repeated_placeholders(self):
        self.assertFalse(check_placeholder_parity("Action: {0}, Action: {0}", "Aktion: {0}"))
        self.assertTrue(check_placeholder_parity("Action: {0}, Action: {0}", "Aktion: {0}, Aktion: {0}"))

    def test_placeholder_parity_without_placeholders(self):
        self.assertTrue(check_placeholder_parity("Save", "Speichern"))


class TestEncodingChecks(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.temp_dir.cleanup()

    def write_bytes(self, data: bytes) -> str:
        path = os.path.join(self.temp_dir.name, 'SharedResources.de.resx')
        with open(path, 'wb') as f:
            f.write(data)
        return path

    def test_encoding_and_mojibake_success(self):
        path = self.write_bytes('<value>verfügbar in München</value>'.encode('utf-8'))

        self.assertEqual(check_encoding_and_mojibake(path), [])

    def test_invalid_utf8(self):
        path = self.write_bytes('<value>München</value>'.encode('latin-1'))

        errors = check_encoding_and_mojibake(path)

        self.assertEqual(len(errors), 1)
        self.assertIn("not a valid UTF-8 file", errors[0])

    def test_mojibake_detected(self):
        path = self.write_bytes('<value>verfÃ¼gbar</value>'.encode('utf-8'))

        errors = check_encoding_and_mojibake(path)

        self.assertEqual(len(errors), 1)
        self.assertIn("Potential mojibake", errors[0])

    def test_replacement_character_detected(self):
        path = self.write_bytes('<value>M\ufffdnchen</value>'.encode('utf-8'))

        errors = check_encoding_and_mojibake(path)

        self.assertEqual(len(errors), 1)
        self.assertIn("replacement character", errors[0])

    def test_missing_file(self):
        errors = check_encoding_and_mojibake(os.path.join(self.temp_dir.name, 'missing.resx'))

        self.assertEqual(len(errors), 1)
        self.assertIn("Could not read file", errors[0])


if __name__ == '__main__':
    unittest.main()
