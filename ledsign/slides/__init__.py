"""Slides that can take part in the rotation."""

from ledsign.slides.base import Slide, draw_every, draw_every_second, draw_once
from ledsign.slides.countdown import CountdownSlide
from ledsign.slides.covid import CovidSlide, VaccinationSlide
from ledsign.slides.holidays import ChristmasSlide, NewYearSlide
from ledsign.slides.mbta import MbtaSlide
from ledsign.slides.time_slide import TimeSlide
from ledsign.slides.weather import WeatherSlide
from ledsign.slides.welcome import IdleSlide, WelcomeSlide

__all__ = [
    "ChristmasSlide",
    "CountdownSlide",
    "CovidSlide",
    "IdleSlide",
    "MbtaSlide",
    "NewYearSlide",
    "Slide",
    "TimeSlide",
    "VaccinationSlide",
    "WeatherSlide",
    "WelcomeSlide",
    "draw_every",
    "draw_every_second",
    "draw_once",
]
