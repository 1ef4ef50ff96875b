import numpy as np
from numpy.testing import assert_allclose
from pynav import earth, transform


def somigliana_gravity(lat):
    ge = 9.7803253359
    gp = 9.8321849378
    k = (1 - earth.E2) ** 0.5 * gp / ge - 1
    sin_lat = np.sin(np.deg2rad(lat))
    return ge * (1 + k * sin_lat ** 2) / (1 - earth.E2 * sin_lat ** 2) ** 0.5


def test_principal_radii():
    rn, re, rp = earth.principal_radii(0, 0)
    assert_allclose(re, earth.A, rtol=1e-10)
    assert_allclose(rn, earth.A * (1 - earth.E2), rtol=1e-10)
    assert_allclose(rp, earth.A, rtol=1e-10)

    rn, re, rp = earth.principal_radii([0, 90], [0, 100])
    assert_allclose(re[1], rn[1], rtol=1e-10)
    assert_allclose(rp[1], 0, atol=1e-8)
    assert_allclose(re[0], earth.A, rtol=1e-10)


def test_geocentric_radius():
    assert_allclose(earth.geocentric_radius(0), earth.A, rtol=1e-12)
    assert_allclose(earth.geocentric_radius(90), earth.A * (1 - earth.E2) ** 0.5,
                    rtol=1e-12)
    lat = 41.3825
    r_e = transform.lla_to_ecef([lat, 2.176944, 0])
    assert_allclose(earth.geocentric_radius(lat), np.linalg.norm(r_e), rtol=1e-12)


def test_gravity_ecef():
    for lat, lon in [(0, 0), (41.3825, 2.176944), (-60, 120), (89, -30)]:
        r_e = transform.lla_to_ecef([lat, lon, 0])
        g_e = earth.gravity_ecef(r_e)
        assert_allclose(np.linalg.norm(g_e), somigliana_gravity(lat), rtol=2e-4)

        mat_en = transform.mat_en_from_ll(lat, lon)
        g_n = mat_en.T @ g_e
        assert g_n[2] > 0
        assert np.hypot(g_n[0], g_n[1]) < 1e-4 * g_n[2]

    assert_allclose(earth.gravity_ecef(np.zeros(3)), 0)

    r_e = transform.lla_to_ecef([[10, 20, 0], [-30, 40, 1000]])
    assert_allclose(earth.gravity_ecef(r_e),
                    np.vstack([earth.gravity_ecef(r_e[0]),
                               earth.gravity_ecef(r_e[1])]))
