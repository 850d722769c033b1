import itertools
import secrets
import unittest

from inheritance_vault.errors import InsufficientShares, InvalidShareFormat, InvalidSSSConfig
from inheritance_vault.sss import (
    SSSConfig,
    combine,
    combine_shares,
    generate_instructions,
    get_sss_options,
    split,
    split_private_key,
    validate_share,
)


class TestShamir(unittest.TestCase):

    def setUp(self):
        self.secret_hex = secrets.token_hex(32)

    def _roundtrip(self, threshold, total):
        kit = split_private_key(self.secret_hex, SSSConfig(threshold=threshold, total=total))
        self.assertEqual(len(kit.shares), total)
        self.assertEqual([s.index for s in kit.shares], list(range(1, total + 1)))
        for share in kit.shares:
            self.assertEqual(len(share.share), 66)
            self.assertTrue(validate_share(share.share))

        for subset in itertools.combinations(kit.shares, threshold):
            self.assertEqual(combine_shares([s.share for s in subset]), self.secret_hex)

    def test_two_of_three(self):
        self._roundtrip(2, 3)

    def test_three_of_five(self):
        self._roundtrip(3, 5)

    def test_all_shares_also_recover(self):
        kit = split_private_key(self.secret_hex, SSSConfig(threshold=3, total=5))
        self.assertEqual(combine_shares([s.share for s in kit.shares]), self.secret_hex)

    def test_below_threshold_does_not_recover(self):
        kit = split_private_key(self.secret_hex, SSSConfig(threshold=3, total=5))
        # Two points always interpolate to something; it is not the secret
        recovered = combine_shares([kit.shares[0].share, kit.shares[1].share])
        self.assertEqual(len(recovered), 64)

    def test_shares_differ_between_splits(self):
        config = SSSConfig(threshold=2, total=3)
        first = split_private_key(self.secret_hex, config)
        second = split_private_key(self.secret_hex, config)
        self.assertNotEqual(
            [s.share for s in first.shares],
            [s.share for s in second.shares],
        )

    def test_uppercase_shares_accepted(self):
        kit = split_private_key(self.secret_hex, SSSConfig(threshold=2, total=3))
        shares = [kit.shares[0].share.upper(), kit.shares[2].share]
        self.assertEqual(combine_shares(shares), self.secret_hex)

    def test_single_share_rejected(self):
        kit = split_private_key(self.secret_hex, SSSConfig(threshold=2, total=3))
        with self.assertRaises(InsufficientShares):
            combine_shares([kit.shares[0].share])
        with self.assertRaises(InsufficientShares):
            combine_shares([])

    def test_malformed_share_rejected(self):
        kit = split_private_key(self.secret_hex, SSSConfig(threshold=2, total=3))
        with self.assertRaises(InvalidShareFormat):
            combine_shares([kit.shares[0].share, "xyz"])
        with self.assertRaises(InvalidShareFormat):
            combine_shares([kit.shares[0].share, kit.shares[0].share])
        with self.assertRaises(InvalidShareFormat):
            combine_shares([kit.shares[0].share, kit.shares[1].share + "00"])

    def test_raw_split_combine(self):
        secret = b"inheritance"
        shares = split(secret, total=4, threshold=2)
        self.assertEqual(combine([shares[3], shares[1]]), secret)
        with self.assertRaises(ValueError):
            split(b"", total=3, threshold=2)
        with self.assertRaises(ValueError):
            split(secret, total=3, threshold=1)


class TestConfig(unittest.TestCase):

    def test_supported(self):
        SSSConfig(threshold=2, total=3).validate()
        SSSConfig(threshold=3, total=5).validate()

    def test_unsupported(self):
        for threshold, total in ((1, 3), (2, 5), (3, 3), (4, 5), (5, 3)):
            with self.assertRaises(InvalidSSSConfig):
                SSSConfig(threshold=threshold, total=total).validate()

    def test_split_private_key_validates_input(self):
        with self.assertRaises(ValueError):
            split_private_key("abcd", SSSConfig(threshold=2, total=3))
        with self.assertRaises(InvalidSSSConfig):
            split_private_key("11" * 32, SSSConfig(threshold=2, total=4))

    def test_validate_share(self):
        self.assertTrue(validate_share("ab" * 33))
        self.assertFalse(validate_share("ab" * 31))
        self.assertFalse(validate_share("a" * 65))
        self.assertFalse(validate_share("zz" * 33))
        self.assertFalse(validate_share(None))
        self.assertFalse(validate_share("ab" * 33 + "\n\n"))

    def test_options_and_instructions(self):
        self.assertEqual([o['id'] for o in get_sss_options()], ['2-of-3', '3-of-5'])
        lines = generate_instructions(SSSConfig(threshold=3, total=5))
        self.assertEqual(lines[0], "SOCIAL RECOVERY CONFIGURATION: 3-of-5")
        self.assertIn("• 2 or fewer shares reveal NOTHING about the key", lines)


if __name__ == '__main__':
    unittest.main()
