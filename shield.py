"""
Interceptor shield.

Many ad-supported players open a popup on the first interaction anywhere in
the frame. The shield is an overlay that swallows the first N clicks, then
gets out of the way. It is modelled as a reducer keyed by
(provider_id, season, episode): a new key is a new mount and re-arms it.

The watch page runs the same reducer in the browser (render_shield_script).
"""
import json
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional


class ShieldPhase(str, Enum):
    ARMED = 'armed'
    DISARMED = 'disarmed'


@dataclass(frozen=True)
class ShieldKey:
    provider_id: str
    season: Optional[int] = None
    episode: Optional[int] = None

    @property
    def token(self):
        """String form used by the browser reducer"""
        return f"{self.provider_id}-{self.season}-{self.episode}"


@dataclass(frozen=True)
class ShieldState:
    key: ShieldKey
    threshold: int
    clicks_absorbed: int = 0
    phase: ShieldPhase = ShieldPhase.ARMED

    @property
    def armed(self):
        return self.phase is ShieldPhase.ARMED


@dataclass(frozen=True)
class Click:
    pass


@dataclass(frozen=True)
class Remount:
    key: ShieldKey
    threshold: int


def mount(key, threshold):
    """Fresh, armed shield"""
    if threshold < 1:
        raise ValueError("threshold must be at least 1")
    return ShieldState(key=key, threshold=threshold)


def absorb_click(state):
    """
    Apply one user click.

    Returns (new_state, delivered). delivered is False while the shield is
    armed: the click must not reach the embedded page.
    """
    if not state.armed:
        return state, True
    clicks = state.clicks_absorbed + 1
    phase = ShieldPhase.DISARMED if clicks >= state.threshold else ShieldPhase.ARMED
    return replace(state, clicks_absorbed=clicks, phase=phase), False


def remount(state, key, threshold):
    """Re-arm when the (provider, season, episode) identity changes"""
    if state is not None and state.key == key:
        return state
    return mount(key, threshold)


def reduce(state, event):
    if isinstance(event, Click):
        return absorb_click(state)[0]
    if isinstance(event, Remount):
        return remount(state, event.key, event.threshold)
    raise TypeError(f"Unknown shield event: {event!r}")


def key_for(provider, season=None, episode=None):
    return ShieldKey(provider_id=provider.id, season=season, episode=episode)


# =============================================================================
# BROWSER SIDE
# =============================================================================

SHIELD_SCRIPT = '''
<script>
(function() {
    var overlay = document.getElementById('%(overlay_id)s');
    var status = document.getElementById('%(status_id)s');
    var state = null;

    function mount(key, threshold) {
        return { key: key, threshold: threshold, clicksAbsorbed: 0, armed: true };
    }

    function reduce(state, event) {
        if (event.type === 'remount') {
            if (state && state.key === event.key) return state;
            return mount(event.key, event.threshold);
        }
        if (event.type === 'click') {
            if (!state.armed) return state;
            var clicks = state.clicksAbsorbed + 1;
            return {
                key: state.key,
                threshold: state.threshold,
                clicksAbsorbed: clicks,
                armed: clicks < state.threshold
            };
        }
        return state;
    }

    function render() {
        overlay.style.display = state.armed ? 'block' : 'none';
        if (status) status.textContent = state.armed ? 'ACTIVE' : 'STANDBY';
    }

    overlay.addEventListener('click', function(e) {
        if (!state.armed) return;
        e.preventDefault();
        e.stopPropagation();
        state = reduce(state, { type: 'click' });
        console.log('[Embed Shield] Absorbed click', state.clicksAbsorbed + '/' + state.threshold);
        render();
    }, true);

    window.embedShield = {
        remount: function(key, threshold) {
            state = reduce(state, { type: 'remount', key: key, threshold: threshold });
            render();
        },
        state: function() { return state; }
    };

    window.embedShield.remount(%(key)s, %(threshold)d);
})();
</script>
'''


def render_shield_script(state, overlay_id='shield', status_id='shield-status'):
    """JS that arms the overlay element with the given initial state"""
    return SHIELD_SCRIPT % {
        'overlay_id': overlay_id,
        'status_id': status_id,
        'key': json.dumps(state.key.token),
        'threshold': state.threshold,
    }
