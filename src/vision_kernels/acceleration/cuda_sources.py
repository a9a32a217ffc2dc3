"""
CUDA C source of the accelerator kernels.

Every ``extern "C"`` entry point matches a registry entry by name and
argument order, followed by the global extent (``int gw, int gh`` for 2D
kernels, ``int n`` for 1D kernels). HSL conversion and the neighbourhood
filters compute in double precision, like the CPU reference kernels.
"""

CUDA_SOURCE = r"""
#define ADDRESS_ZERO 1
#define TRUNC_GUARD 1e-3

#define GLOBAL_2D                                          \
    int x = blockIdx.x * blockDim.x + threadIdx.x;         \
    int y = blockIdx.y * blockDim.y + threadIdx.y;         \
    if (x >= gw || y >= gh) return;

#define GLOBAL_1D                                          \
    int i = blockIdx.x * blockDim.x + threadIdx.x;         \
    if (i >= n) return;

typedef unsigned char uchar;
typedef unsigned int uint;

/* ------------------------------------------------------------------ */
/* fills                                                              */
/* ------------------------------------------------------------------ */

template <typename T>
__device__ void set_value(T* buf, T value, int n)
{
    GLOBAL_1D
    buf[i] = value;
}

extern "C" __global__ void byte_set_value(uchar* buf, uchar value, int n)
{ set_value<uchar>(buf, value, n); }

extern "C" __global__ void uint_set_value(uint* buf, uint value, int n)
{ set_value<uint>(buf, value, n); }

extern "C" __global__ void float_set_value(float* buf, float value, int n)
{ set_value<float>(buf, value, n); }

extern "C" __global__ void byte_set_value_rgba(
    uchar* buf, uchar r, uchar g, uchar b, uchar a, int n)
{
    GLOBAL_1D
    int k = 4 * i;
    buf[k] = r;
    buf[k + 1] = g;
    buf[k + 2] = b;
    buf[k + 3] = a;
}

/* ------------------------------------------------------------------ */
/* elementwise float                                                  */
/* ------------------------------------------------------------------ */

extern "C" __global__ void float_abs(
    const float* src, float* dst, uint sp, uint dp, int gw, int gh)
{
    GLOBAL_2D
    dst[y * dp + x] = fabsf(src[y * sp + x]);
}

extern "C" __global__ void float_add_value(
    const float* src, float* dst, uint sp, uint dp, float value, int gw, int gh)
{
    GLOBAL_2D
    dst[y * dp + x] = src[y * sp + x] + value;
}

extern "C" __global__ void float_multiply_value(
    const float* src, float* dst, uint sp, uint dp, float factor, int gw, int gh)
{
    GLOBAL_2D
    dst[y * dp + x] = src[y * sp + x] * factor;
}

extern "C" __global__ void float_clamp(
    const float* src, float* dst, uint sp, uint dp, float lo, float hi, int gw, int gh)
{
    GLOBAL_2D
    float v = src[y * sp + x];
    if (v < lo) v = lo;
    if (v > hi) v = hi;
    dst[y * dp + x] = v;
}

extern "C" __global__ void float_normalize(
    const float* src, float* dst, uint sp, uint dp, int gw, int gh)
{
    GLOBAL_2D
    dst[y * dp + x] = src[y * sp + x] / 255.0f;
}

extern "C" __global__ void float_denormalize(
    const float* src, float* dst, uint sp, uint dp, int gw, int gh)
{
    GLOBAL_2D
    dst[y * dp + x] = src[y * sp + x] * 255.0f;
}

extern "C" __global__ void byte_to_float(
    const uchar* src, float* dst, uint sp, uint dp, int gw, int gh)
{
    GLOBAL_2D
    dst[y * dp + x] = (float)src[y * sp + x];
}

extern "C" __global__ void float_to_byte(
    const float* src, uchar* dst, uint sp, uint dp, float scale, int gw, int gh)
{
    GLOBAL_2D
    float v = src[y * sp + x] * scale;
    if (v < 0.0f) v = 0.0f;
    if (v > 255.0f) v = 255.0f;
    dst[y * dp + x] = (uchar)v;
}

/* ------------------------------------------------------------------ */
/* geometry and channels                                              */
/* ------------------------------------------------------------------ */

template <typename T>
__device__ void flip_x(const T* src, T* dst, uint sw, uint dw, uint ch, int gw, int gh)
{
    GLOBAL_2D
    uint s = (y * sw + x) * ch;
    uint d = (y * dw + (gw - 1 - x)) * ch;
    for (uint c = 0; c < ch; c++) dst[d + c] = src[s + c];
}

template <typename T>
__device__ void flip_y(const T* src, T* dst, uint sw, uint dw, uint ch, int gw, int gh)
{
    GLOBAL_2D
    uint s = (y * sw + x) * ch;
    uint d = ((gh - 1 - y) * dw + x) * ch;
    for (uint c = 0; c < ch; c++) dst[d + c] = src[s + c];
}

extern "C" __global__ void byte_flip_x(const uchar* src, uchar* dst, uint sw, uint dw, uint ch, int gw, int gh)
{ flip_x<uchar>(src, dst, sw, dw, ch, gw, gh); }

extern "C" __global__ void byte_flip_y(const uchar* src, uchar* dst, uint sw, uint dw, uint ch, int gw, int gh)
{ flip_y<uchar>(src, dst, sw, dw, ch, gw, gh); }

extern "C" __global__ void float_flip_x(const float* src, float* dst, uint sw, uint dw, uint ch, int gw, int gh)
{ flip_x<float>(src, dst, sw, dw, ch, gw, gh); }

extern "C" __global__ void float_flip_y(const float* src, float* dst, uint sw, uint dw, uint ch, int gw, int gh)
{ flip_y<float>(src, dst, sw, dw, ch, gw, gh); }

template <typename T>
__device__ void extract_channel(const T* src, T* dst, uint sw, uint dw, uint offset, int gw, int gh)
{
    GLOBAL_2D
    dst[y * dw + x] = src[(y * sw + x) * 4 + offset];
}

extern "C" __global__ void byte_extract_channel(const uchar* src, uchar* dst, uint sw, uint dw, uint offset, int gw, int gh)
{ extract_channel<uchar>(src, dst, sw, dw, offset, gw, gh); }

extern "C" __global__ void float_extract_channel(const float* src, float* dst, uint sw, uint dw, uint offset, int gw, int gh)
{ extract_channel<float>(src, dst, sw, dw, offset, gw, gh); }

template <typename T>
__device__ void set_channel(const T* src, T* dst, uint sw, uint dw, uint offset, T value, int gw, int gh)
{
    GLOBAL_2D
    uint s = (y * sw + x) * 4;
    uint d = (y * dw + x) * 4;
    for (uint c = 0; c < 4; c++) dst[d + c] = (c == offset) ? value : src[s + c];
}

extern "C" __global__ void byte_set_channel(const uchar* src, uchar* dst, uint sw, uint dw, uint offset, uchar value, int gw, int gh)
{ set_channel<uchar>(src, dst, sw, dw, offset, value, gw, gh); }

extern "C" __global__ void float_set_channel(const float* src, float* dst, uint sw, uint dw, uint offset, float value, int gw, int gh)
{ set_channel<float>(src, dst, sw, dw, offset, value, gw, gh); }

template <typename T>
__device__ void set_channel_mask(const T* src, const T* mask, T* dst, uint sw, uint mw, uint dw, uint offset, int gw, int gh)
{
    GLOBAL_2D
    uint s = (y * sw + x) * 4;
    uint d = (y * dw + x) * 4;
    T m = mask[y * mw + x];
    for (uint c = 0; c < 4; c++) dst[d + c] = (c == offset) ? m : src[s + c];
}

extern "C" __global__ void byte_set_channel_mask(const uchar* src, const uchar* mask, uchar* dst, uint sw, uint mw, uint dw, uint offset, int gw, int gh)
{ set_channel_mask<uchar>(src, mask, dst, sw, mw, dw, offset, gw, gh); }

extern "C" __global__ void float_set_channel_mask(const float* src, const float* mask, float* dst, uint sw, uint mw, uint dw, uint offset, int gw, int gh)
{ set_channel_mask<float>(src, mask, dst, sw, mw, dw, offset, gw, gh); }

template <typename T>
__device__ void swap_channel(const T* src, T* dst, uint sw, uint dw, uint a, uint b, int gw, int gh)
{
    GLOBAL_2D
    uint s = (y * sw + x) * 4;
    uint d = (y * dw + x) * 4;
    T va = src[s + a];
    T vb = src[s + b];
    for (uint c = 0; c < 4; c++) dst[d + c] = src[s + c];
    dst[d + a] = vb;
    dst[d + b] = va;
}

extern "C" __global__ void byte_swap_channel(const uchar* src, uchar* dst, uint sw, uint dw, uint a, uint b, int gw, int gh)
{ swap_channel<uchar>(src, dst, sw, dw, a, b, gw, gh); }

extern "C" __global__ void float_swap_channel(const float* src, float* dst, uint sw, uint dw, uint a, uint b, int gw, int gh)
{ swap_channel<float>(src, dst, sw, dw, a, b, gw, gh); }

extern "C" __global__ void byte_a_to_byte_rgba(const uchar* src, uchar* dst, uint sw, uint dw, int gw, int gh)
{
    GLOBAL_2D
    uchar v = src[y * sw + x];
    uint d = (y * dw + x) * 4;
    dst[d] = v;
    dst[d + 1] = v;
    dst[d + 2] = v;
    dst[d + 3] = 255;
}

/* ------------------------------------------------------------------ */
/* colour                                                             */
/* ------------------------------------------------------------------ */

template <typename T>
__device__ float luma(const T* src, uint s)
{
    return 0.2989f * (float)src[s] + 0.5870f * (float)src[s + 1] + 0.1140f * (float)src[s + 2];
}

extern "C" __global__ void byte_gray_scale(const uchar* src, uchar* dst, uint sw, uint dw, int gw, int gh)
{
    GLOBAL_2D
    float v = luma<uchar>(src, (y * sw + x) * 4);
    if (v > 255.0f) v = 255.0f;
    dst[y * dw + x] = (uchar)v;
}

extern "C" __global__ void byte_gray_scale_float(const uchar* src, float* dst, uint sw, uint dw, int gw, int gh)
{
    GLOBAL_2D
    dst[y * dw + x] = luma<uchar>(src, (y * sw + x) * 4);
}

extern "C" __global__ void float_gray_scale(const float* src, float* dst, uint sw, uint dw, int gw, int gh)
{
    GLOBAL_2D
    dst[y * dw + x] = luma<float>(src, (y * sw + x) * 4);
}

__device__ void rgb_to_hsl(double r, double g, double b, double* h, double* s, double* l)
{
    double hi = fmax(r, fmax(g, b));
    double lo = fmin(r, fmin(g, b));
    *l = (hi + lo) / 2.0;
    if (hi == lo) {
        *h = 0.0;
        *s = 0.0;
        return;
    }
    double delta = hi - lo;
    *s = (*l <= 0.5) ? delta / (hi + lo) : delta / (2.0 - hi - lo);
    double hue;
    if (hi == r) {
        hue = (g - b) / delta;
        if (hue < 0.0) hue += 6.0;
    } else if (hi == g) {
        hue = 2.0 + (b - r) / delta;
    } else {
        hue = 4.0 + (r - g) / delta;
    }
    *h = hue / 6.0;
}

__device__ double hue_to_channel(double p, double q, double t)
{
    if (t < 0.0) t += 1.0;
    if (t > 1.0) t -= 1.0;
    if (t < 1.0 / 6.0) return p + (q - p) * 6.0 * t;
    if (t < 0.5) return q;
    if (t < 2.0 / 3.0) return p + (q - p) * (2.0 / 3.0 - t) * 6.0;
    return p;
}

__device__ void hsl_to_rgb(double h, double s, double l, double* r, double* g, double* b)
{
    if (s == 0.0) {
        *r = l;
        *g = l;
        *b = l;
        return;
    }
    double q = (l < 0.5) ? l * (1.0 + s) : l + s - l * s;
    double p = 2.0 * l - q;
    *r = hue_to_channel(p, q, h + 1.0 / 3.0);
    *g = hue_to_channel(p, q, h);
    *b = hue_to_channel(p, q, h - 1.0 / 3.0);
}

__device__ uchar to_byte(double v)
{
    v = v * 255.0 + TRUNC_GUARD;
    if (v < 0.0) v = 0.0;
    if (v > 255.0) v = 255.0;
    return (uchar)v;
}

extern "C" __global__ void byte_rgb_to_hsl(const uchar* src, uchar* dst, uint sw, uint dw, int gw, int gh)
{
    GLOBAL_2D
    uint s = (y * sw + x) * 4;
    uint d = (y * dw + x) * 4;
    double h, sat, l;
    rgb_to_hsl(src[s] / 255.0, src[s + 1] / 255.0, src[s + 2] / 255.0, &h, &sat, &l);
    dst[d] = to_byte(h);
    dst[d + 1] = to_byte(sat);
    dst[d + 2] = to_byte(l);
    dst[d + 3] = src[s + 3];
}

extern "C" __global__ void byte_hsl_to_rgb(const uchar* src, uchar* dst, uint sw, uint dw, int gw, int gh)
{
    GLOBAL_2D
    uint s = (y * sw + x) * 4;
    uint d = (y * dw + x) * 4;
    double r, g, b;
    hsl_to_rgb(src[s] / 255.0, src[s + 1] / 255.0, src[s + 2] / 255.0, &r, &g, &b);
    dst[d] = to_byte(r);
    dst[d + 1] = to_byte(g);
    dst[d + 2] = to_byte(b);
    dst[d + 3] = src[s + 3];
}

extern "C" __global__ void float_rgb_to_hsl(const float* src, float* dst, uint sw, uint dw, float scale, int gw, int gh)
{
    GLOBAL_2D
    uint s = (y * sw + x) * 4;
    uint d = (y * dw + x) * 4;
    double k = (double)scale;
    double h, sat, l;
    rgb_to_hsl(src[s] / k, src[s + 1] / k, src[s + 2] / k, &h, &sat, &l);
    dst[d] = (float)(h * k);
    dst[d + 1] = (float)(sat * k);
    dst[d + 2] = (float)(l * k);
    dst[d + 3] = src[s + 3];
}

extern "C" __global__ void float_hsl_to_rgb(const float* src, float* dst, uint sw, uint dw, float scale, int gw, int gh)
{
    GLOBAL_2D
    uint s = (y * sw + x) * 4;
    uint d = (y * dw + x) * 4;
    double k = (double)scale;
    double r, g, b;
    hsl_to_rgb(src[s] / k, src[s + 1] / k, src[s + 2] / k, &r, &g, &b);
    dst[d] = (float)(r * k);
    dst[d + 1] = (float)(g * k);
    dst[d + 2] = (float)(b * k);
    dst[d + 3] = src[s + 3];
}

/* ------------------------------------------------------------------ */
/* difference and neighbourhood filters                               */
/* ------------------------------------------------------------------ */

extern "C" __global__ void float_diff(
    const float* src1, const float* src2, float* dst, uint sw, uint dw, uint ch, int gw, int gh)
{
    GLOBAL_2D
    uint s = (y * sw + x) * ch;
    if (ch == 1) {
        dst[y * dw + x] = fabsf(src1[s] - src2[s]);
    } else {
        float total = fabsf(src1[s] - src2[s])
                    + fabsf(src1[s + 1] - src2[s + 1])
                    + fabsf(src1[s + 2] - src2[s + 2]);
        dst[y * dw + x] = total / 3.0f;
    }
}

template <typename T>
__device__ double sample(const T* src, uint sw, uint ch, int gw, int gh, int x, int y, uint c, int mode)
{
    if (x < 0 || y < 0 || x >= gw || y >= gh) {
        if (mode == ADDRESS_ZERO) return 0.0;
        x = min(max(x, 0), gw - 1);
        y = min(max(y, 0), gh - 1);
    }
    return (double)src[(y * sw + x) * ch + c];
}

template <typename T>
__device__ double box_mean(const T* src, uint sw, uint ch, int gw, int gh, int x, int y, uint c, int offset, int mode)
{
    double total = 0.0;
    for (int dy = -offset; dy <= offset; dy++)
        for (int dx = -offset; dx <= offset; dx++)
            total += sample<T>(src, sw, ch, gw, gh, x + dx, y + dy, c, mode);
    int side = 2 * offset + 1;
    return total / (side * side);
}

extern "C" __global__ void byte_box_blur(
    const uchar* src, uchar* dst, uint sw, uint dw, uint ch, int offset, int sampler, int gw, int gh)
{
    GLOBAL_2D
    uint d = (y * dw + x) * ch;
    for (uint c = 0; c < ch; c++) {
        double v = box_mean<uchar>(src, sw, ch, gw, gh, x, y, c, offset, sampler) + TRUNC_GUARD;
        if (v > 255.0) v = 255.0;
        dst[d + c] = (uchar)v;
    }
}

extern "C" __global__ void float_box_blur(
    const float* src, float* dst, uint sw, uint dw, uint ch, int offset, int sampler, int gw, int gh)
{
    GLOBAL_2D
    uint d = (y * dw + x) * ch;
    for (uint c = 0; c < ch; c++)
        dst[d + c] = (float)box_mean<float>(src, sw, ch, gw, gh, x, y, c, offset, sampler);
}

template <typename T>
__device__ double sobel_magnitude(const T* src, uint sw, uint ch, int gw, int gh, int x, int y, uint c, int mode)
{
    double tl = sample<T>(src, sw, ch, gw, gh, x - 1, y - 1, c, mode);
    double tc = sample<T>(src, sw, ch, gw, gh, x, y - 1, c, mode);
    double tr = sample<T>(src, sw, ch, gw, gh, x + 1, y - 1, c, mode);
    double ml = sample<T>(src, sw, ch, gw, gh, x - 1, y, c, mode);
    double mr = sample<T>(src, sw, ch, gw, gh, x + 1, y, c, mode);
    double bl = sample<T>(src, sw, ch, gw, gh, x - 1, y + 1, c, mode);
    double bc = sample<T>(src, sw, ch, gw, gh, x, y + 1, c, mode);
    double br = sample<T>(src, sw, ch, gw, gh, x + 1, y + 1, c, mode);
    double gx = (tr + 2.0 * mr + br) - (tl + 2.0 * ml + bl);
    double gy = (bl + 2.0 * bc + br) - (tl + 2.0 * tc + tr);
    return sqrt(gx * gx + gy * gy);
}

extern "C" __global__ void byte_sobel(
    const uchar* src, uchar* dst, uint sw, uint dw, uint ch, int sampler, int gw, int gh)
{
    GLOBAL_2D
    uint d = (y * dw + x) * ch;
    uint colour = ch < 3 ? ch : 3;
    for (uint c = 0; c < colour; c++) {
        double v = sobel_magnitude<uchar>(src, sw, ch, gw, gh, x, y, c, sampler);
        if (v > 255.0) v = 255.0;
        dst[d + c] = (uchar)v;
    }
    if (ch == 4) dst[d + 3] = src[(y * sw + x) * ch + 3];
}

extern "C" __global__ void float_sobel(
    const float* src, float* dst, uint sw, uint dw, uint ch, int sampler, int gw, int gh)
{
    GLOBAL_2D
    uint d = (y * dw + x) * ch;
    uint colour = ch < 3 ? ch : 3;
    for (uint c = 0; c < colour; c++)
        dst[d + c] = (float)sobel_magnitude<float>(src, sw, ch, gw, gh, x, y, c, sampler);
    if (ch == 4) dst[d + 3] = src[(y * sw + x) * ch + 3];
}

/* ------------------------------------------------------------------ */
/* integral images: border zeroing, row prefix sums, column prefix    */
/* sums. Unsigned stores wrap modulo 2^32.                            */
/* ------------------------------------------------------------------ */

template <typename T>
__device__ void integral_borders(T* dst, uint dw, uint dh, int n)
{
    GLOBAL_1D
    if ((uint)i < dw) dst[i] = 0;
    if ((uint)i < dh) dst[i * dw] = 0;
}

extern "C" __global__ void uint_integral_borders(uint* dst, uint dw, uint dh, int n)
{ integral_borders<uint>(dst, dw, dh, n); }

extern "C" __global__ void float_integral_borders(float* dst, uint dw, uint dh, int n)
{ integral_borders<float>(dst, dw, dh, n); }

extern "C" __global__ void byte_integral_rows(const uchar* src, uint* dst, uint sw, uint dw, uint width, int n)
{
    GLOBAL_1D
    if (i < 1) return;
    uint running = 0;
    uint base = (i - 1) * sw;
    for (uint x = 1; x < width; x++) {
        running += src[base + x - 1];
        dst[i * dw + x] = running;
    }
}

extern "C" __global__ void byte_integral_square_rows(const uchar* src, uint* dst, uint sw, uint dw, uint width, int n)
{
    GLOBAL_1D
    if (i < 1) return;
    uint running = 0;
    uint base = (i - 1) * sw;
    for (uint x = 1; x < width; x++) {
        uint v = src[base + x - 1];
        running += v * v;
        dst[i * dw + x] = running;
    }
}

extern "C" __global__ void float_integral_rows(const float* src, float* dst, uint sw, uint dw, uint width, int n)
{
    GLOBAL_1D
    if (i < 1) return;
    float running = 0.0f;
    uint base = (i - 1) * sw;
    for (uint x = 1; x < width; x++) {
        running += src[base + x - 1];
        dst[i * dw + x] = running;
    }
}

extern "C" __global__ void float_integral_square_rows(const float* src, float* dst, uint sw, uint dw, uint width, int n)
{
    GLOBAL_1D
    if (i < 1) return;
    float running = 0.0f;
    uint base = (i - 1) * sw;
    for (uint x = 1; x < width; x++) {
        float v = src[base + x - 1];
        running += v * v;
        dst[i * dw + x] = running;
    }
}

template <typename T>
__device__ void integral_columns(T* dst, uint dw, uint height, int n)
{
    GLOBAL_1D
    if (i < 1) return;
    for (uint y = 2; y < height; y++)
        dst[y * dw + i] += dst[(y - 1) * dw + i];
}

extern "C" __global__ void uint_integral_columns(uint* dst, uint dw, uint height, int n)
{ integral_columns<uint>(dst, dw, height, n); }

extern "C" __global__ void float_integral_columns(float* dst, uint dw, uint height, int n)
{ integral_columns<float>(dst, dw, height, n); }

/* ------------------------------------------------------------------ */
/* histograms and backprojection                                      */
/* ------------------------------------------------------------------ */

__device__ uint bucket(uint r, uint g, uint b, uint bins)
{
    return ((r * bins) >> 8) + ((g * bins) >> 8) * bins + ((b * bins) >> 8) * bins * bins;
}

extern "C" __global__ void byte_histogram_256(
    const uchar* src, uint* hist, uint sw, uint x0, uint y0, int gw, int gh)
{
    GLOBAL_2D
    atomicAdd(&hist[src[(y + y0) * sw + x + x0]], 1u);
}

extern "C" __global__ void byte_rgba_histogram_n(
    const uchar* src, uint* hist, uint sw, uint bins, uint x0, uint y0, int gw, int gh)
{
    GLOBAL_2D
    uint s = ((y + y0) * sw + x + x0) * 4;
    atomicAdd(&hist[bucket(src[s], src[s + 1], src[s + 2], bins)], 1u);
}

__device__ float backprojection(
    const uchar* src, const uint* model, const uint* frame, uint s, uint bins, uint model_empty)
{
    if (model_empty != 0) return 1.0f;
    uint b = bucket(src[s], src[s + 1], src[s + 2], bins);
    uint m = model[b];
    uint f = frame[b];
    if (f == 0) return m > 0 ? 1.0f : 0.0f;
    float p = (float)m / (float)f;
    return p < 1.0f ? p : 1.0f;
}

extern "C" __global__ void byte_rgba_backprojection_byte(
    const uchar* src, uchar* dst, const uint* model, const uint* frame,
    uint sw, uint dw, uint dch, uint bins, uint x0, uint y0, uint model_empty, int gw, int gh)
{
    GLOBAL_2D
    uint px = x + x0;
    uint py = y + y0;
    float p = backprojection(src, model, frame, (py * sw + px) * 4, bins, model_empty);
    uchar v = (uchar)(p * 255.0f);
    uint d = (py * dw + px) * dch;
    if (dch == 1) {
        dst[d] = v;
    } else {
        dst[d] = v;
        dst[d + 1] = v;
        dst[d + 2] = v;
        dst[d + 3] = 255;
    }
}

extern "C" __global__ void byte_rgba_backprojection_float(
    const uchar* src, float* dst, const uint* model, const uint* frame,
    uint sw, uint dw, uint dch, uint bins, uint x0, uint y0, uint model_empty, int gw, int gh)
{
    GLOBAL_2D
    uint px = x + x0;
    uint py = y + y0;
    float p = backprojection(src, model, frame, (py * sw + px) * 4, bins, model_empty);
    uint d = (py * dw + px) * dch;
    if (dch == 1) {
        dst[d] = p;
    } else {
        dst[d] = p;
        dst[d + 1] = p;
        dst[d + 2] = p;
        dst[d + 3] = 1.0f;
    }
}
"""
