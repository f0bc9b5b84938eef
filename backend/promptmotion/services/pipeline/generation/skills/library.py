"""
Built-in skills used when no catalog file is configured.
"""

from .catalog import SkillDescriptor


SPRING_MOTION = SkillDescriptor(
    id="spring-motion",
    category="guidance",
    trigger="bouncy, elastic, physical or 'natural' motion; things popping in or settling",
    body="""
- Use spring(ctx.frame - start, fps=ctx.fps, ...) for entrances; it returns 0 -> 1 and overshoots with low damping.
- damping 8-12 gives a visible bounce, 20+ settles without overshoot. Raise stiffness for faster motion.
- Map the spring value to position/scale with interpolate(value, [0, 1], [from, to]); do not clamp it or the
  overshoot disappears.
- A bouncing ball: y = floor - abs(sin) style motion reads better than a spring; use
  interpolate(ctx.frame % period, [0, period / 2, period], [floor, top, floor], easing=Easing.ease_out(Easing.quad)).
""",
)

TEXT_ANIMATION = SkillDescriptor(
    id="text-animation",
    category="guidance",
    trigger="titles, captions, typewriter effects, kinetic typography, words appearing",
    body="""
- Typewriter: visible = int(interpolate(ctx.frame, [0, 60], [0, len(text)], extrapolate_right="clamp")),
  then Text(text[:visible], ...).
- Word-by-word reveals: one Text per word, each with its own delayed opacity interpolation.
- Fade + slide in: opacity and y both interpolated over the same 15-20 frames, with clamp on both sides.
- Keep size >= 32 and center with x = ctx.width / 2 (text is anchored at its center).
""",
)

SEQUENCING = SkillDescriptor(
    id="sequencing",
    category="guidance",
    trigger="multiple scenes or steps, 'then', 'after that', timelines, staggered elements",
    body="""
- Split the timeline into Sequence(..., start=..., duration=...) blocks; compute local timing with
  local = ctx.shifted(start) and animate from local.frame.
- Stagger lists with a per-item delay: delay = i * 6; value = spring(ctx.frame - delay, fps=ctx.fps).
- Keep all timing constants together at module level so follow-up edits can adjust them.
""",
)

DATA_CHART = SkillDescriptor(
    id="data-chart",
    category="example",
    trigger="bar charts, graphs, statistics, numbers growing, data visualization",
    body='''
```python
DATA = [("Mon", 12), ("Tue", 19), ("Wed", 7), ("Thu", 15)]
MAX_VALUE = 20

def BarChart(ctx):
    bars = []
    for i, (label, value) in enumerate(DATA):
        grow = spring(ctx.frame - i * 8, fps=ctx.fps, damping=14)
        height = interpolate(grow, [0, 1], [0, value / MAX_VALUE * 600])
        x = 400 + i * 300
        bars.append(Rect(width=160, height=height, x=x, y=900 - height / 2, fill="#4f8cff", corner_radius=8))
        bars.append(Text(label, x=x, y=960, size=36))
    return Fill(*bars, background="#0f172a")
```
''',
)

SCENE_3D = SkillDescriptor(
    id="scene-3d",
    category="example",
    trigger="3D objects, rotating cubes or spheres, planets, camera moves, depth",
    body='''
```python
def SpinningCube(ctx):
    angle = ctx.frame * 0.04
    return Fill(
        Scene3D(
            PerspectiveCamera(position=vec3(0, 1.5, 5), look_at=vec3(0, 0, 0)),
            AmbientLight(intensity=0.4),
            DirectionalLight(position=vec3(3, 5, 2)),
            Mesh(Cube(size=1.5), color=ctx.param("color", "#f97316"), rotation=vec3(angle, angle * 0.7, 0)),
        ),
        background="#111827",
    )
```
- Rotation is in radians; position/rotation/scale accept vec3 or 3-item lists.
''',
)

MEDIA_ASSETS = SkillDescriptor(
    id="media-assets",
    category="guidance",
    trigger="uploaded images, photos, logos, video clips, music or sound",
    body="""
- Reference uploads only by filename through asset("name.png"); never invent URLs or paths.
- Img(asset("logo.png"), x=..., y=..., width=...) for images, Video(asset("clip.mp4"), ...) for video,
  Audio(asset("music.mp3"), volume=0.6) for sound.
- ASSETS lists every available filename if you need to iterate.
""",
)

COLOR_TRANSITIONS = SkillDescriptor(
    id="color-transitions",
    category="guidance",
    trigger="color changes, gradients over time, day/night, mood shifts",
    body="""
- interpolate_colors(ctx.frame, [0, 45, 90], ["#ff0000", "#ffff00", "#00ff00"]) blends hex colors and clamps at the ends.
- Use the same helper for backgrounds: Fill(..., background=interpolate_colors(...)).
""",
)


BUILTIN_SKILLS = (
    SPRING_MOTION,
    TEXT_ANIMATION,
    SEQUENCING,
    DATA_CHART,
    SCENE_3D,
    MEDIA_ASSETS,
    COLOR_TRANSITIONS,
)
