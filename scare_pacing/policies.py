from .arousal import Intensity


def policy(env):
    # Strategy: only scare when heart rate has sagged below the band and the cooldown
    # has passed. Pick the first site whose zone holds the player, and only if that
    # site is the one its type resolves to, otherwise the scare would miss.
    # Medium intensity keeps the jump under the overreaction threshold.
    session = env.session
    wait = [env.NO_EVENT, 0]

    if session.heart_rate >= session.band.min:
        return wait
    if session.memory.in_cooldown(env.director.cooldown_floor):
        return wait

    registry = session.registry
    for site in registry:
        if registry.in_zone(site, session.subject_position) and registry.resolve(site.event_type) is site:
            return [int(site.event_type), int(Intensity.MEDIUM)]
    return wait
