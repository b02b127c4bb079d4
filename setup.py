from setuptools import find_packages, setup

# Plain setup.py so python-for-android (legacy builds) can install the package
# with an explicit python_requires.

package_list = find_packages(
  include=[
    "entrypoints",
    "entrypoints.*",
    "backend",
    "backend.*",
    "os_interfaces",
    "os_interfaces.*",
    "reminders",
    "reminders.*",
    "notification",
    "notification.*",
    "boot_event",
    "boot_event.*",
  ]
)

setup(
  name="burbly",
  version="0.1.0",
  description="Reminder alarm scheduling and notification bridge for the Burbly study app",
  python_requires=">=3.11",
  packages=package_list,
  include_package_data=True,
  install_requires=[
    "fastapi>=0.119.0",
    "uvicorn[standard]",
    "pywebview",
    "pyyaml",
    "pydantic>=2",
    "python-dotenv",
    "platformdirs",
    "asgi-correlation-id",
    "slowapi",
  ],
  extras_require={
    "android": ["pyjnius", "cython==3.0.12", "buildozer"],
    "linux": ["desktop-notifier>=5", "pystemd"],
    "dev": ["pytest", "pytest-asyncio", "pytest-cov", "httpx"],
  },
  entry_points={
    "console_scripts": [
      "burbly-app=entrypoints.burbly_app_linux:main",
      "burbly-alarm-fired=notification.main:run",
      "burbly-boot-event=boot_event.main:run",
    ],
  },
)
