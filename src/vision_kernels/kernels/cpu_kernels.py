"""JIT-compiled CPU reference kernels.

Each kernel is a Numba function compiled with ``nogil=True`` that receives
the lowered argument list of its registry entry, the global extent and a
half-open ``[start, end)`` range of the last extent dimension (rows for 2D
kernels, elements for 1D kernels). The CPU dispatcher splits that range
across threads; the accelerator emulation in the test suite calls the same
functions with the full range.

Image widths passed as ``*_w`` arguments are in pixels; the element
offset of channel ``c`` of pixel ``(x, y)`` is ``(y * w + x) * channels + c``.
Elementwise float kernels run over ``(width * channels, height)`` and take
row pitches in elements instead.
"""

from __future__ import annotations

from typing import Callable, Dict

import numba
import numpy as np


def _kernel(func):
    return numba.njit(nogil=True, cache=False)(func)


_F0 = np.float32(0.0)
_F1 = np.float32(1.0)
_F255 = np.float32(255.0)
_GRAY_R = np.float32(0.2989)
_GRAY_G = np.float32(0.5870)
_GRAY_B = np.float32(0.1140)
_TRUNC_GUARD = 1e-3
_ADDRESS_ZERO = 1


# ---------------------------------------------------------------------------
# fills (1D)
# ---------------------------------------------------------------------------


@_kernel
def set_value(buf, value, n, start, end):
    for i in range(start, end):
        buf[i] = value


@_kernel
def byte_set_value_rgba(buf, r, g, b, a, n, start, end):
    for i in range(start, end):
        k = 4 * i
        buf[k] = r
        buf[k + 1] = g
        buf[k + 2] = b
        buf[k + 3] = a


# ---------------------------------------------------------------------------
# elementwise float (2D over elements x rows)
# ---------------------------------------------------------------------------


@_kernel
def float_abs(src, dst, src_pitch, dst_pitch, gw, gh, start, end):
    sp = np.int64(src_pitch)
    dp = np.int64(dst_pitch)
    for y in range(start, end):
        for x in range(gw):
            dst[y * dp + x] = abs(src[y * sp + x])


@_kernel
def float_add_value(src, dst, src_pitch, dst_pitch, value, gw, gh, start, end):
    sp = np.int64(src_pitch)
    dp = np.int64(dst_pitch)
    for y in range(start, end):
        for x in range(gw):
            dst[y * dp + x] = src[y * sp + x] + value


@_kernel
def float_multiply_value(src, dst, src_pitch, dst_pitch, factor, gw, gh, start, end):
    sp = np.int64(src_pitch)
    dp = np.int64(dst_pitch)
    for y in range(start, end):
        for x in range(gw):
            dst[y * dp + x] = src[y * sp + x] * factor


@_kernel
def float_clamp(src, dst, src_pitch, dst_pitch, lo, hi, gw, gh, start, end):
    sp = np.int64(src_pitch)
    dp = np.int64(dst_pitch)
    for y in range(start, end):
        for x in range(gw):
            v = src[y * sp + x]
            if v < lo:
                v = lo
            if v > hi:
                v = hi
            dst[y * dp + x] = v


@_kernel
def float_normalize(src, dst, src_pitch, dst_pitch, gw, gh, start, end):
    sp = np.int64(src_pitch)
    dp = np.int64(dst_pitch)
    for y in range(start, end):
        for x in range(gw):
            dst[y * dp + x] = src[y * sp + x] / _F255


@_kernel
def float_denormalize(src, dst, src_pitch, dst_pitch, gw, gh, start, end):
    sp = np.int64(src_pitch)
    dp = np.int64(dst_pitch)
    for y in range(start, end):
        for x in range(gw):
            dst[y * dp + x] = src[y * sp + x] * _F255


@_kernel
def byte_to_float(src, dst, src_pitch, dst_pitch, gw, gh, start, end):
    sp = np.int64(src_pitch)
    dp = np.int64(dst_pitch)
    for y in range(start, end):
        for x in range(gw):
            dst[y * dp + x] = np.float32(src[y * sp + x])


@_kernel
def float_to_byte(src, dst, src_pitch, dst_pitch, scale, gw, gh, start, end):
    sp = np.int64(src_pitch)
    dp = np.int64(dst_pitch)
    for y in range(start, end):
        for x in range(gw):
            v = src[y * sp + x] * scale
            if v < _F0:
                v = _F0
            if v > _F255:
                v = _F255
            dst[y * dp + x] = np.uint8(int(v))


# ---------------------------------------------------------------------------
# geometry and channels (2D over pixels x rows)
# ---------------------------------------------------------------------------


@_kernel
def flip_x(src, dst, src_w, dst_w, channels, gw, gh, start, end):
    sw = np.int64(src_w)
    dw = np.int64(dst_w)
    ch = np.int64(channels)
    for y in range(start, end):
        for x in range(gw):
            s = (y * sw + x) * ch
            d = (y * dw + (gw - 1 - x)) * ch
            for c in range(ch):
                dst[d + c] = src[s + c]


@_kernel
def flip_y(src, dst, src_w, dst_w, channels, gw, gh, start, end):
    sw = np.int64(src_w)
    dw = np.int64(dst_w)
    ch = np.int64(channels)
    for y in range(start, end):
        for x in range(gw):
            s = (y * sw + x) * ch
            d = ((gh - 1 - y) * dw + x) * ch
            for c in range(ch):
                dst[d + c] = src[s + c]


@_kernel
def extract_channel(src, dst, src_w, dst_w, offset, gw, gh, start, end):
    sw = np.int64(src_w)
    dw = np.int64(dst_w)
    for y in range(start, end):
        for x in range(gw):
            dst[y * dw + x] = src[(y * sw + x) * 4 + offset]


@_kernel
def set_channel(src, dst, src_w, dst_w, offset, value, gw, gh, start, end):
    sw = np.int64(src_w)
    dw = np.int64(dst_w)
    for y in range(start, end):
        for x in range(gw):
            s = (y * sw + x) * 4
            d = (y * dw + x) * 4
            for c in range(4):
                dst[d + c] = value if c == offset else src[s + c]


@_kernel
def set_channel_mask(src, mask, dst, src_w, mask_w, dst_w, offset, gw, gh, start, end):
    sw = np.int64(src_w)
    mw = np.int64(mask_w)
    dw = np.int64(dst_w)
    for y in range(start, end):
        for x in range(gw):
            s = (y * sw + x) * 4
            d = (y * dw + x) * 4
            m = mask[y * mw + x]
            for c in range(4):
                dst[d + c] = m if c == offset else src[s + c]


@_kernel
def swap_channel(src, dst, src_w, dst_w, a, b, gw, gh, start, end):
    sw = np.int64(src_w)
    dw = np.int64(dst_w)
    for y in range(start, end):
        for x in range(gw):
            s = (y * sw + x) * 4
            d = (y * dw + x) * 4
            va = src[s + a]
            vb = src[s + b]
            for c in range(4):
                dst[d + c] = src[s + c]
            dst[d + a] = vb
            dst[d + b] = va


@_kernel
def byte_a_to_byte_rgba(src, dst, src_w, dst_w, gw, gh, start, end):
    sw = np.int64(src_w)
    dw = np.int64(dst_w)
    for y in range(start, end):
        for x in range(gw):
            v = src[y * sw + x]
            d = (y * dw + x) * 4
            dst[d] = v
            dst[d + 1] = v
            dst[d + 2] = v
            dst[d + 3] = 255


# ---------------------------------------------------------------------------
# colour
# ---------------------------------------------------------------------------


@_kernel
def _luma(src, s):
    return (
        _GRAY_R * np.float32(src[s])
        + _GRAY_G * np.float32(src[s + 1])
        + _GRAY_B * np.float32(src[s + 2])
    )


@_kernel
def byte_gray_scale(src, dst, src_w, dst_w, gw, gh, start, end):
    sw = np.int64(src_w)
    dw = np.int64(dst_w)
    for y in range(start, end):
        for x in range(gw):
            v = _luma(src, (y * sw + x) * 4)
            if v > _F255:
                v = _F255
            dst[y * dw + x] = np.uint8(int(v))


@_kernel
def gray_scale_float(src, dst, src_w, dst_w, gw, gh, start, end):
    sw = np.int64(src_w)
    dw = np.int64(dst_w)
    for y in range(start, end):
        for x in range(gw):
            dst[y * dw + x] = _luma(src, (y * sw + x) * 4)


@_kernel
def _rgb_to_hsl(r, g, b):
    hi = max(r, max(g, b))
    lo = min(r, min(g, b))
    light = (hi + lo) / 2.0
    if hi == lo:
        return 0.0, 0.0, light
    delta = hi - lo
    if light <= 0.5:
        sat = delta / (hi + lo)
    else:
        sat = delta / (2.0 - hi - lo)
    if hi == r:
        hue = (g - b) / delta
        if hue < 0.0:
            hue += 6.0
    elif hi == g:
        hue = 2.0 + (b - r) / delta
    else:
        hue = 4.0 + (r - g) / delta
    return hue / 6.0, sat, light


@_kernel
def _hue_to_channel(p, q, t):
    if t < 0.0:
        t += 1.0
    if t > 1.0:
        t -= 1.0
    if t < 1.0 / 6.0:
        return p + (q - p) * 6.0 * t
    if t < 0.5:
        return q
    if t < 2.0 / 3.0:
        return p + (q - p) * (2.0 / 3.0 - t) * 6.0
    return p


@_kernel
def _hsl_to_rgb(hue, sat, light):
    if sat == 0.0:
        return light, light, light
    if light < 0.5:
        q = light * (1.0 + sat)
    else:
        q = light + sat - light * sat
    p = 2.0 * light - q
    return (
        _hue_to_channel(p, q, hue + 1.0 / 3.0),
        _hue_to_channel(p, q, hue),
        _hue_to_channel(p, q, hue - 1.0 / 3.0),
    )


@_kernel
def _to_byte(v):
    v = v * 255.0 + _TRUNC_GUARD
    if v < 0.0:
        v = 0.0
    if v > 255.0:
        v = 255.0
    return np.uint8(int(v))


@_kernel
def byte_rgb_to_hsl(src, dst, src_w, dst_w, gw, gh, start, end):
    sw = np.int64(src_w)
    dw = np.int64(dst_w)
    for y in range(start, end):
        for x in range(gw):
            s = (y * sw + x) * 4
            d = (y * dw + x) * 4
            h, sat, light = _rgb_to_hsl(src[s] / 255.0, src[s + 1] / 255.0, src[s + 2] / 255.0)
            dst[d] = _to_byte(h)
            dst[d + 1] = _to_byte(sat)
            dst[d + 2] = _to_byte(light)
            dst[d + 3] = src[s + 3]


@_kernel
def byte_hsl_to_rgb(src, dst, src_w, dst_w, gw, gh, start, end):
    sw = np.int64(src_w)
    dw = np.int64(dst_w)
    for y in range(start, end):
        for x in range(gw):
            s = (y * sw + x) * 4
            d = (y * dw + x) * 4
            r, g, b = _hsl_to_rgb(src[s] / 255.0, src[s + 1] / 255.0, src[s + 2] / 255.0)
            dst[d] = _to_byte(r)
            dst[d + 1] = _to_byte(g)
            dst[d + 2] = _to_byte(b)
            dst[d + 3] = src[s + 3]


@_kernel
def float_rgb_to_hsl(src, dst, src_w, dst_w, scale, gw, gh, start, end):
    sw = np.int64(src_w)
    dw = np.int64(dst_w)
    k = np.float64(scale)
    for y in range(start, end):
        for x in range(gw):
            s = (y * sw + x) * 4
            d = (y * dw + x) * 4
            h, sat, light = _rgb_to_hsl(src[s] / k, src[s + 1] / k, src[s + 2] / k)
            dst[d] = h * k
            dst[d + 1] = sat * k
            dst[d + 2] = light * k
            dst[d + 3] = src[s + 3]


@_kernel
def float_hsl_to_rgb(src, dst, src_w, dst_w, scale, gw, gh, start, end):
    sw = np.int64(src_w)
    dw = np.int64(dst_w)
    k = np.float64(scale)
    for y in range(start, end):
        for x in range(gw):
            s = (y * sw + x) * 4
            d = (y * dw + x) * 4
            r, g, b = _hsl_to_rgb(src[s] / k, src[s + 1] / k, src[s + 2] / k)
            dst[d] = r * k
            dst[d + 1] = g * k
            dst[d + 2] = b * k
            dst[d + 3] = src[s + 3]


# ---------------------------------------------------------------------------
# difference and neighbourhood filters
# ---------------------------------------------------------------------------


@_kernel
def float_diff(src1, src2, dst, src_w, dst_w, channels, gw, gh, start, end):
    sw = np.int64(src_w)
    dw = np.int64(dst_w)
    ch = np.int64(channels)
    for y in range(start, end):
        for x in range(gw):
            s = (y * sw + x) * ch
            if ch == 1:
                dst[y * dw + x] = abs(src1[s] - src2[s])
            else:
                total = (
                    abs(src1[s] - src2[s])
                    + abs(src1[s + 1] - src2[s + 1])
                    + abs(src1[s + 2] - src2[s + 2])
                )
                dst[y * dw + x] = total / np.float32(3.0)


@_kernel
def _sample(src, sw, ch, gw, gh, x, y, c, mode):
    if x < 0 or y < 0 or x >= gw or y >= gh:
        if mode == _ADDRESS_ZERO:
            return 0.0
        x = min(max(x, 0), gw - 1)
        y = min(max(y, 0), gh - 1)
    return np.float64(src[(y * sw + x) * ch + c])


@_kernel
def _box_mean(src, sw, ch, gw, gh, x, y, c, offset, mode):
    total = 0.0
    for dy in range(-offset, offset + 1):
        for dx in range(-offset, offset + 1):
            total += _sample(src, sw, ch, gw, gh, x + dx, y + dy, c, mode)
    side = 2 * offset + 1
    return total / (side * side)


@_kernel
def byte_box_blur(src, dst, src_w, dst_w, channels, offset, sampler, gw, gh, start, end):
    sw = np.int64(src_w)
    dw = np.int64(dst_w)
    ch = np.int64(channels)
    r = np.int64(offset)
    for y in range(start, end):
        for x in range(gw):
            d = (y * dw + x) * ch
            for c in range(ch):
                v = _box_mean(src, sw, ch, gw, gh, x, y, c, r, sampler) + _TRUNC_GUARD
                if v > 255.0:
                    v = 255.0
                dst[d + c] = np.uint8(int(v))


@_kernel
def float_box_blur(src, dst, src_w, dst_w, channels, offset, sampler, gw, gh, start, end):
    sw = np.int64(src_w)
    dw = np.int64(dst_w)
    ch = np.int64(channels)
    r = np.int64(offset)
    for y in range(start, end):
        for x in range(gw):
            d = (y * dw + x) * ch
            for c in range(ch):
                dst[d + c] = _box_mean(src, sw, ch, gw, gh, x, y, c, r, sampler)


@_kernel
def _sobel_magnitude(src, sw, ch, gw, gh, x, y, c, mode):
    tl = _sample(src, sw, ch, gw, gh, x - 1, y - 1, c, mode)
    tc = _sample(src, sw, ch, gw, gh, x, y - 1, c, mode)
    tr = _sample(src, sw, ch, gw, gh, x + 1, y - 1, c, mode)
    ml = _sample(src, sw, ch, gw, gh, x - 1, y, c, mode)
    mr = _sample(src, sw, ch, gw, gh, x + 1, y, c, mode)
    bl = _sample(src, sw, ch, gw, gh, x - 1, y + 1, c, mode)
    bc = _sample(src, sw, ch, gw, gh, x, y + 1, c, mode)
    br = _sample(src, sw, ch, gw, gh, x + 1, y + 1, c, mode)
    gx = (tr + 2.0 * mr + br) - (tl + 2.0 * ml + bl)
    gy = (bl + 2.0 * bc + br) - (tl + 2.0 * tc + tr)
    return np.sqrt(gx * gx + gy * gy)


@_kernel
def byte_sobel(src, dst, src_w, dst_w, channels, sampler, gw, gh, start, end):
    sw = np.int64(src_w)
    dw = np.int64(dst_w)
    ch = np.int64(channels)
    colour = min(ch, 3)
    for y in range(start, end):
        for x in range(gw):
            d = (y * dw + x) * ch
            for c in range(colour):
                v = _sobel_magnitude(src, sw, ch, gw, gh, x, y, c, sampler)
                if v > 255.0:
                    v = 255.0
                dst[d + c] = np.uint8(int(v))
            if ch == 4:
                dst[d + 3] = src[(y * sw + x) * ch + 3]


@_kernel
def float_sobel(src, dst, src_w, dst_w, channels, sampler, gw, gh, start, end):
    sw = np.int64(src_w)
    dw = np.int64(dst_w)
    ch = np.int64(channels)
    colour = min(ch, 3)
    for y in range(start, end):
        for x in range(gw):
            d = (y * dw + x) * ch
            for c in range(colour):
                dst[d + c] = _sobel_magnitude(src, sw, ch, gw, gh, x, y, c, sampler)
            if ch == 4:
                dst[d + 3] = src[(y * sw + x) * ch + 3]


# ---------------------------------------------------------------------------
# integral images
#
# dst[y][x] for y in [1, H), x in [1, W) holds the sum of src over rows
# [0, y) and columns [0, x); row 0 and column 0 are zero. The sum is built
# as row prefix sums followed by column prefix sums. uint32 stores wrap
# modulo 2**32.
# ---------------------------------------------------------------------------


@_kernel
def integral_borders(dst, dst_w, dst_h, n, start, end):
    dw = np.int64(dst_w)
    dh = np.int64(dst_h)
    for i in range(start, end):
        if i < dw:
            dst[i] = 0
        if i < dh:
            dst[i * dw] = 0


@_kernel
def byte_integral_rows(src, dst, src_w, dst_w, width, n, start, end):
    sw = np.int64(src_w)
    dw = np.int64(dst_w)
    for y in range(max(start, 1), end):
        running = np.int64(0)
        base = (y - 1) * sw
        for x in range(1, np.int64(width)):
            running += np.int64(src[base + x - 1])
            dst[y * dw + x] = running


@_kernel
def byte_integral_square_rows(src, dst, src_w, dst_w, width, n, start, end):
    sw = np.int64(src_w)
    dw = np.int64(dst_w)
    for y in range(max(start, 1), end):
        running = np.int64(0)
        base = (y - 1) * sw
        for x in range(1, np.int64(width)):
            v = np.int64(src[base + x - 1])
            running += v * v
            dst[y * dw + x] = running


@_kernel
def float_integral_rows(src, dst, src_w, dst_w, width, n, start, end):
    sw = np.int64(src_w)
    dw = np.int64(dst_w)
    for y in range(max(start, 1), end):
        running = _F0
        base = (y - 1) * sw
        for x in range(1, np.int64(width)):
            running += src[base + x - 1]
            dst[y * dw + x] = running


@_kernel
def float_integral_square_rows(src, dst, src_w, dst_w, width, n, start, end):
    sw = np.int64(src_w)
    dw = np.int64(dst_w)
    for y in range(max(start, 1), end):
        running = _F0
        base = (y - 1) * sw
        for x in range(1, np.int64(width)):
            v = src[base + x - 1]
            running += v * v
            dst[y * dw + x] = running


@_kernel
def integral_columns(dst, dst_w, height, n, start, end):
    dw = np.int64(dst_w)
    for x in range(max(start, 1), end):
        for y in range(2, np.int64(height)):
            dst[y * dw + x] = dst[y * dw + x] + dst[(y - 1) * dw + x]


# ---------------------------------------------------------------------------
# histograms and backprojection
# ---------------------------------------------------------------------------


@_kernel
def byte_histogram_256(src, hist, src_w, x0, y0, gw, gh, start, end):
    sw = np.int64(src_w)
    ox = np.int64(x0)
    oy = np.int64(y0)
    for y in range(start, end):
        row = (y + oy) * sw + ox
        for x in range(gw):
            hist[src[row + x]] += 1


@_kernel
def _bucket(r, g, b, bins):
    n = np.int64(bins)
    return ((r * n) >> 8) + ((g * n) >> 8) * n + ((b * n) >> 8) * n * n


@_kernel
def byte_rgba_histogram_n(src, hist, src_w, bins, x0, y0, gw, gh, start, end):
    sw = np.int64(src_w)
    ox = np.int64(x0)
    oy = np.int64(y0)
    for y in range(start, end):
        for x in range(gw):
            s = ((y + oy) * sw + x + ox) * 4
            hist[
                _bucket(np.int64(src[s]), np.int64(src[s + 1]), np.int64(src[s + 2]), bins)
            ] += 1


@_kernel
def _backprojection(src, model, frame, s, bins, model_empty):
    if model_empty != 0:
        return _F1
    b = _bucket(np.int64(src[s]), np.int64(src[s + 1]), np.int64(src[s + 2]), bins)
    m = model[b]
    f = frame[b]
    if f == 0:
        return _F1 if m > 0 else _F0
    p = np.float32(m) / np.float32(f)
    return p if p < _F1 else _F1


@_kernel
def byte_rgba_backprojection_byte(
    src, dst, model, frame, src_w, dst_w, dst_channels, bins, x0, y0, model_empty, gw, gh, start, end
):
    sw = np.int64(src_w)
    dw = np.int64(dst_w)
    ch = np.int64(dst_channels)
    ox = np.int64(x0)
    oy = np.int64(y0)
    for y in range(start, end):
        for x in range(gw):
            px = x + ox
            py = y + oy
            p = _backprojection(src, model, frame, (py * sw + px) * 4, bins, model_empty)
            v = np.uint8(int(p * _F255))
            d = (py * dw + px) * ch
            if ch == 1:
                dst[d] = v
            else:
                dst[d] = v
                dst[d + 1] = v
                dst[d + 2] = v
                dst[d + 3] = 255


@_kernel
def byte_rgba_backprojection_float(
    src, dst, model, frame, src_w, dst_w, dst_channels, bins, x0, y0, model_empty, gw, gh, start, end
):
    sw = np.int64(src_w)
    dw = np.int64(dst_w)
    ch = np.int64(dst_channels)
    ox = np.int64(x0)
    oy = np.int64(y0)
    for y in range(start, end):
        for x in range(gw):
            px = x + ox
            py = y + oy
            p = _backprojection(src, model, frame, (py * sw + px) * 4, bins, model_empty)
            d = (py * dw + px) * ch
            if ch == 1:
                dst[d] = p
            else:
                dst[d] = p
                dst[d + 1] = p
                dst[d + 2] = p
                dst[d + 3] = _F1


CPU_KERNELS: Dict[str, Callable] = {
    "byte_set_value": set_value,
    "uint_set_value": set_value,
    "float_set_value": set_value,
    "byte_set_value_rgba": byte_set_value_rgba,
    "float_abs": float_abs,
    "float_add_value": float_add_value,
    "float_multiply_value": float_multiply_value,
    "float_clamp": float_clamp,
    "float_normalize": float_normalize,
    "float_denormalize": float_denormalize,
    "byte_to_float": byte_to_float,
    "float_to_byte": float_to_byte,
    "byte_flip_x": flip_x,
    "byte_flip_y": flip_y,
    "float_flip_x": flip_x,
    "float_flip_y": flip_y,
    "byte_extract_channel": extract_channel,
    "float_extract_channel": extract_channel,
    "byte_set_channel": set_channel,
    "float_set_channel": set_channel,
    "byte_set_channel_mask": set_channel_mask,
    "float_set_channel_mask": set_channel_mask,
    "byte_swap_channel": swap_channel,
    "float_swap_channel": swap_channel,
    "byte_a_to_byte_rgba": byte_a_to_byte_rgba,
    "byte_gray_scale": byte_gray_scale,
    "byte_gray_scale_float": gray_scale_float,
    "float_gray_scale": gray_scale_float,
    "byte_rgb_to_hsl": byte_rgb_to_hsl,
    "byte_hsl_to_rgb": byte_hsl_to_rgb,
    "float_rgb_to_hsl": float_rgb_to_hsl,
    "float_hsl_to_rgb": float_hsl_to_rgb,
    "float_diff": float_diff,
    "byte_box_blur": byte_box_blur,
    "float_box_blur": float_box_blur,
    "byte_sobel": byte_sobel,
    "float_sobel": float_sobel,
    "uint_integral_borders": integral_borders,
    "float_integral_borders": integral_borders,
    "byte_integral_rows": byte_integral_rows,
    "byte_integral_square_rows": byte_integral_square_rows,
    "float_integral_rows": float_integral_rows,
    "float_integral_square_rows": float_integral_square_rows,
    "uint_integral_columns": integral_columns,
    "float_integral_columns": integral_columns,
    "byte_histogram_256": byte_histogram_256,
    "byte_rgba_histogram_n": byte_rgba_histogram_n,
    "byte_rgba_backprojection_byte": byte_rgba_backprojection_byte,
    "byte_rgba_backprojection_float": byte_rgba_backprojection_float,
}
