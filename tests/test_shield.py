#!/usr/bin/env python3
"""
Tests for the interceptor shield reducer and provider registry
"""
import unittest

from providers import (
    DEFAULT_PROVIDER,
    PROVIDERS,
    ProviderDescriptor,
    embedmaster_url,
    get_provider,
)
from shield import (
    Click,
    Remount,
    ShieldKey,
    ShieldPhase,
    absorb_click,
    key_for,
    mount,
    reduce,
    remount,
    render_shield_script,
)


class TestShieldClicks(unittest.TestCase):
    """Test click absorption"""

    def test_initial_state_is_armed(self):
        state = mount(ShieldKey('vidsrc_me', 1, 1), 2)
        self.assertEqual(state.phase, ShieldPhase.ARMED)
        self.assertEqual(state.clicks_absorbed, 0)

    def test_threshold_two(self):
        """Test that clicks 1-2 are absorbed and the 3rd is delivered"""
        state = mount(ShieldKey('vidsrc_me', 1, 1), 2)

        state, delivered = absorb_click(state)
        self.assertFalse(delivered)
        self.assertTrue(state.armed)
        self.assertEqual(state.clicks_absorbed, 1)

        state, delivered = absorb_click(state)
        self.assertFalse(delivered)
        self.assertEqual(state.phase, ShieldPhase.DISARMED)
        self.assertEqual(state.clicks_absorbed, 2)

        state, delivered = absorb_click(state)
        self.assertTrue(delivered)
        self.assertEqual(state.clicks_absorbed, 2)

    def test_threshold_one(self):
        state = mount(ShieldKey('embedmaster'), 1)
        state, delivered = absorb_click(state)
        self.assertFalse(delivered)
        self.assertFalse(state.armed)
        _, delivered = absorb_click(state)
        self.assertTrue(delivered)

    def test_threshold_must_be_positive(self):
        with self.assertRaises(ValueError):
            mount(ShieldKey('x'), 0)


class TestShieldRemount(unittest.TestCase):
    """Test re-arming on identity change"""

    def disarmed(self, key):
        state = mount(key, 2)
        state = reduce(state, Click())
        return reduce(state, Click())

    def test_season_change_rearms(self):
        """Test that season 1 -> 2 resets a disarmed shield"""
        state = self.disarmed(ShieldKey('vidsrc_me', 1, 1))
        self.assertEqual(state.phase, ShieldPhase.DISARMED)

        state = reduce(state, Remount(ShieldKey('vidsrc_me', 2, 1), 2))
        self.assertEqual(state.phase, ShieldPhase.ARMED)
        self.assertEqual(state.clicks_absorbed, 0)

    def test_provider_change_rearms_with_new_threshold(self):
        state = self.disarmed(ShieldKey('vidsrc_me', 1, 1))
        state = remount(state, ShieldKey('embedmaster', 1, 1), 1)
        self.assertTrue(state.armed)
        self.assertEqual(state.threshold, 1)

    def test_same_key_keeps_state(self):
        key = ShieldKey('vidlink', 1, 3)
        state = self.disarmed(key)
        self.assertIs(remount(state, key, 2), state)

    def test_unknown_event(self):
        with self.assertRaises(TypeError):
            reduce(mount(ShieldKey('x'), 1), 'click')

    def test_browser_script_carries_key_and_threshold(self):
        state = mount(key_for(get_provider('vidlink'), 2, 5), 2)
        script = render_shield_script(state)
        self.assertIn('window.embedShield.remount("vidlink-2-5", 2);', script)
        self.assertIn("document.getElementById('shield')", script)
        self.assertIn('e.stopPropagation();', script)


class TestProviders(unittest.TestCase):
    """Test provider URL templates"""

    def test_movie_urls(self):
        self.assertEqual(get_provider('embedmaster').get_url(550),
                         'https://embedmaster.link/movie/550?js=1&controls=0')
        self.assertEqual(get_provider('vidsrc_me').get_url(550),
                         'https://vidsrc.me/embed/movie?tmdb=550&js=1')
        self.assertEqual(get_provider('vidlink').get_url(550),
                         'https://vidlink.pro/movie/550?js=1&controls=0')

    def test_tv_urls(self):
        self.assertEqual(get_provider('embedmaster').get_url(1399, 2, 3),
                         'https://embedmaster.link/tv/1399/2/3?js=1&controls=0')
        self.assertEqual(get_provider('vidsrc_me').get_url(1399, 2, 3),
                         'https://vidsrc.me/embed/tv?tmdb=1399&season=2&episode=3&js=1')
        self.assertEqual(get_provider('vidlink').get_url(1399, 2, 3),
                         'https://vidlink.pro/tv/1399/2/3?js=1&controls=0')

    def test_season_without_episode_is_a_movie_url(self):
        self.assertEqual(embedmaster_url(10, 1, None), embedmaster_url(10))

    def test_get_url_is_pure(self):
        for provider in PROVIDERS:
            self.assertEqual(provider.get_url(7, 1, 2), provider.get_url(7, 1, 2))

    def test_registry(self):
        self.assertEqual([p.id for p in PROVIDERS], ['embedmaster', 'vidsrc_me', 'vidlink'])
        self.assertIs(DEFAULT_PROVIDER, get_provider('embedmaster'))
        self.assertIsNone(get_provider('nope'))

    def test_per_provider_thresholds(self):
        self.assertEqual(get_provider('embedmaster').shield_clicks, 1)
        self.assertEqual(get_provider('vidsrc_me').shield_clicks, 2)

    def test_invalid_threshold_rejected(self):
        with self.assertRaises(ValueError):
            ProviderDescriptor(id='bad', name='Bad', url_builder=embedmaster_url, shield_clicks=0)

    def test_to_dict_has_no_callable(self):
        data = get_provider('vidlink').to_dict()
        self.assertEqual(data['id'], 'vidlink')
        self.assertNotIn('url_builder', data)


if __name__ == '__main__':
    unittest.main(verbosity=2)
