from setuptools import find_packages, setup


def main():
    version = "20261017"
    packages = find_packages(include=["parabootstrap", "parabootstrap.*"])
    package_data = {
        "parabootstrap": [
            "templates/*.yml",
        ],
    }
    install_requires = [
        "async-timeout>=4.0.2,<5",
        "pydantic>=2",
        "ruamel.yaml>=0.2.5",
        "scalecodec",
        "substrate-interface>=1.7.4",
        "websocket-client>=1.6",
    ]
    extras_require = {
        "test": [
            "pytest>=7.4",
        ],
    }

    setup(name="parabootstrap",
          version=version,
          description="Cross-chain asset and liquidity provisioning for sandboxed Substrate networks",
          license="Apache 2.0",
          packages=packages,
          package_data=package_data,
          install_requires=install_requires,
          extras_require=extras_require,
          python_requires=">=3.10",
          scripts=[
              "bin/provision_and_register.py",
              "bin/bridge_liquidity.py",
              "bin/bootstrap_pools.py",
              "bin/seed_local_assets.py",
          ],
          )


if __name__ == "__main__":
    main()
