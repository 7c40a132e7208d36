"""GLSL sources for the model pass and the FXAA post-process pass."""

MODEL_VERTEX_SHADER = """
#version 330

in vec3 position;
in vec3 normal;

out vec3 v_normal;
out vec3 v_position;

uniform mat4 modelview;
uniform mat4 perspective;

void main() {
    v_normal = transpose(inverse(mat3(modelview))) * normal;
    gl_Position = perspective * modelview * vec4(position, 1.0);
    v_position = gl_Position.xyz / gl_Position.w;
}
"""

# Blinn-Phong with a single directional light.
MODEL_FRAGMENT_SHADER = """
#version 330

in vec3 v_normal;
in vec3 v_position;

out vec4 color;

uniform vec3 u_light;
uniform vec3 ambient_color;
uniform vec3 diffuse_color;
uniform vec3 specular_color;
uniform float shininess;

void main() {
    vec3 normal = normalize(v_normal);
    vec3 light = normalize(u_light);
    float diffuse = max(dot(normal, light), 0.0);

    vec3 camera_dir = normalize(-v_position);
    vec3 half_direction = normalize(light + camera_dir);
    float specular = pow(max(dot(half_direction, normal), 0.0), shininess);

    color = vec4(ambient_color + diffuse * diffuse_color + specular * specular_color, 1.0);
}
"""

FXAA_VERTEX_SHADER = """
#version 330

in vec2 position;
in vec2 tex_coords;

out vec2 v_tex_coords;

void main() {
    gl_Position = vec4(position, 0.0, 1.0);
    v_tex_coords = tex_coords;
}
"""

# Single-pass FXAA on the scene texture: edges are detected from luma
# contrast and blended along their direction. Alpha is taken from the
# centre sample so transparent backgrounds stay transparent.
FXAA_FRAGMENT_SHADER = """
#version 330

uniform sampler2D tex;
uniform vec2 resolution;

in vec2 v_tex_coords;

out vec4 f_color;

#define FXAA_REDUCE_MIN   (1.0 / 128.0)
#define FXAA_REDUCE_MUL   (1.0 / 8.0)
#define FXAA_SPAN_MAX     8.0

vec4 fxaa(sampler2D tex, vec2 frag_coord, vec2 resolution) {
    vec2 inverse_vp = 1.0 / resolution;
    vec3 rgb_nw = texture(tex, (frag_coord + vec2(-1.0, -1.0)) * inverse_vp).xyz;
    vec3 rgb_ne = texture(tex, (frag_coord + vec2(1.0, -1.0)) * inverse_vp).xyz;
    vec3 rgb_sw = texture(tex, (frag_coord + vec2(-1.0, 1.0)) * inverse_vp).xyz;
    vec3 rgb_se = texture(tex, (frag_coord + vec2(1.0, 1.0)) * inverse_vp).xyz;
    vec4 centre = texture(tex, frag_coord * inverse_vp);
    vec3 rgb_m = centre.xyz;

    vec3 luma = vec3(0.299, 0.587, 0.114);
    float luma_nw = dot(rgb_nw, luma);
    float luma_ne = dot(rgb_ne, luma);
    float luma_sw = dot(rgb_sw, luma);
    float luma_se = dot(rgb_se, luma);
    float luma_m = dot(rgb_m, luma);
    float luma_min = min(luma_m, min(min(luma_nw, luma_ne), min(luma_sw, luma_se)));
    float luma_max = max(luma_m, max(max(luma_nw, luma_ne), max(luma_sw, luma_se)));

    vec2 dir;
    dir.x = -((luma_nw + luma_ne) - (luma_sw + luma_se));
    dir.y = ((luma_nw + luma_sw) - (luma_ne + luma_se));

    float dir_reduce = max((luma_nw + luma_ne + luma_sw + luma_se) * (0.25 * FXAA_REDUCE_MUL), FXAA_REDUCE_MIN);
    float rcp_dir_min = 1.0 / (min(abs(dir.x), abs(dir.y)) + dir_reduce);
    dir = min(vec2(FXAA_SPAN_MAX, FXAA_SPAN_MAX),
              max(vec2(-FXAA_SPAN_MAX, -FXAA_SPAN_MAX), dir * rcp_dir_min)) * inverse_vp;

    vec3 rgb_a = 0.5 * (
        texture(tex, frag_coord * inverse_vp + dir * (1.0 / 3.0 - 0.5)).xyz +
        texture(tex, frag_coord * inverse_vp + dir * (2.0 / 3.0 - 0.5)).xyz);
    vec3 rgb_b = rgb_a * 0.5 + 0.25 * (
        texture(tex, frag_coord * inverse_vp + dir * -0.5).xyz +
        texture(tex, frag_coord * inverse_vp + dir * 0.5).xyz);

    float luma_b = dot(rgb_b, luma);
    if ((luma_b < luma_min) || (luma_b > luma_max)) {
        return vec4(rgb_a, centre.a);
    }
    return vec4(rgb_b, centre.a);
}

void main() {
    f_color = fxaa(tex, v_tex_coords * resolution, resolution);
}
"""
